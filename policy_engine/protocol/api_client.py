"""HTTP client for reading program mappings from an Aleo node.

Each read is independent: no session is shared between calls, and retry state
lives on the stack of ``fetch_mapping``.
"""

import json
import logging
from typing import Callable, Optional

import requests

from policy_engine.errors import (
    ClientError,
    FetchFailedError,
    RateLimitedError,
    ServerError,
    TransportError,
)
from policy_engine.logger import get_logger, log_event
from policy_engine.protocol.backoff import compute_backoff, parse_retry_hint, sleep_ms
from policy_engine.protocol.config import PolicyEngineConfig

HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429


class AleoAPIClient:
    """Reads ``/{network}/program/{program}/mapping/{name}/{key}`` with retries.

    Usage:
        client = AleoAPIClient(PolicyEngineConfig(endpoint="http://localhost:3030",
                                                  network="testnet"))
        value = client.fetch_mapping("freezelist.aleo", "freeze_list_index", "0u32")
    """

    def __init__(
        self,
        config: PolicyEngineConfig,
        sleep: Callable[[float], None] = sleep_ms,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self.logger: logging.Logger = config.logger or get_logger(__name__)

    def mapping_url(self, program_id: str, mapping_name: str, key: str) -> str:
        return (
            f"{self.config.endpoint}/{self.config.network}"
            f"/program/{program_id}/mapping/{mapping_name}/{key}"
        )

    def fetch_mapping(self, program_id: str, mapping_name: str, key: str) -> Optional[str]:
        """Fetch one mapping value.

        Args:
            program_id: Program ID (e.g. "sealance_freezelist_registry.aleo")
            mapping_name: Mapping name (e.g. "freeze_list_index")
            key: Mapping key literal (e.g. "0u32")

        Returns:
            The value with JSON quoting removed, or None when absent

        Raises:
            ClientError: On a 4xx other than 404/429 (not retried)
            RateLimitedError: If still rate limited on the last attempt
            FetchFailedError: If 5xx or transport errors exhaust the attempts
        """
        return self._fetch_with_retries(self.mapping_url(program_id, mapping_name, key))

    def get_config(self) -> PolicyEngineConfig:
        return self.config.copy()

    # --- Internal Helpers ---

    def _fetch_with_retries(self, url: str) -> Optional[str]:
        max_retries = self.config.max_retries
        base_delay = self.config.retry_delay_ms
        last_error: Optional[Exception] = None

        for attempt in range(max_retries):
            is_last = attempt == max_retries - 1
            try:
                response = requests.get(url, timeout=self.config.timeout)
            except requests.RequestException as e:
                last_error = TransportError(f"Network error: {e}", url, attempt + 1)
                last_error.__cause__ = e
            else:
                status = response.status_code

                if status == HTTP_NOT_FOUND:
                    return None

                if status == HTTP_TOO_MANY_REQUESTS:
                    if is_last:
                        log_event(self.logger, logging.ERROR, "Rate limit retries exhausted",
                                  {"url": url, "attempts": max_retries})
                        raise RateLimitedError(
                            f"Rate limited: Too many requests after {max_retries} attempts",
                            url,
                            max_retries,
                        )
                    hint = parse_retry_hint(response.headers.get("Retry-After"))
                    delay = hint if hint is not None else compute_backoff(attempt, base_delay)
                    log_event(self.logger, logging.DEBUG, "Rate limited (429), retrying",
                              {"url": url, "attempt": attempt + 1, "delay_ms": delay})
                    self._sleep(delay)
                    continue

                if 400 <= status < 500:
                    raise ClientError(f"HTTP {status}: {response.reason}", url, status, attempt + 1)

                if 200 <= status < 300:
                    return self._parse_body(response.text)
                # 1xx, unfollowed 3xx and 5xx are all retried
                last_error = ServerError(f"HTTP {status}: {response.reason}", url, status, attempt + 1)

            if not is_last:
                delay = compute_backoff(attempt, base_delay)
                log_event(self.logger, logging.DEBUG, "Request failed, retrying",
                          {"url": url, "attempt": f"{attempt + 1}/{max_retries}",
                           "delay_ms": delay, "error": str(last_error)})
                self._sleep(delay)

        log_event(self.logger, logging.ERROR, "Mapping read failed",
                  {"url": url, "attempts": max_retries, "error": str(last_error)})
        raise FetchFailedError(url, max_retries, last_error) from last_error

    @staticmethod
    def _parse_body(raw: Optional[str]) -> Optional[str]:
        """Trim, unwrap one layer of JSON string quoting, map empty and "null" to None."""
        data = (raw or "").strip()
        if not data:
            return None

        try:
            parsed = json.loads(data)
        except ValueError:
            parsed = None
        else:
            if isinstance(parsed, str):
                data = parsed.strip()
            elif parsed is None:
                return None

        if not data or data == "null":
            return None
        return data
