"""Policy engine configuration."""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

DEFAULT_ENDPOINT = "https://api.explorer.provable.com/v1"
DEFAULT_NETWORK = "mainnet"
DEFAULT_MAX_TREE_DEPTH = 15
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_DELAY_MS = 2000
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class PolicyEngineConfig:
    """Endpoint, tree and retry parameters.

    Attributes:
        endpoint: Node API base URL (e.g. "http://localhost:3030")
        network: Network segment of the URL ("mainnet", "testnet")
        max_tree_depth: Must match MAX_TREE_DEPTH of the on-chain program
        leaves_length: Leaf capacity, also the registry probe limit.
            Defaults to 2^(max_tree_depth - 1).
        max_retries: Attempts per mapping read
        retry_delay_ms: Base backoff delay
        timeout: Per-request timeout in seconds
        logger: Replaces the package logger when given
    """
    endpoint: str = DEFAULT_ENDPOINT
    network: str = DEFAULT_NETWORK
    max_tree_depth: int = DEFAULT_MAX_TREE_DEPTH
    leaves_length: Optional[int] = None
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS
    timeout: float = DEFAULT_TIMEOUT
    logger: Optional[logging.Logger] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ValueError("endpoint must not be empty")
        if not self.network:
            raise ValueError("network must not be empty")
        if self.max_tree_depth < 1:
            raise ValueError(f"max_tree_depth must be positive, got {self.max_tree_depth}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be positive, got {self.max_retries}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must be non-negative, got {self.retry_delay_ms}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

        capacity = 2 ** (self.max_tree_depth - 1)
        if self.leaves_length is None:
            object.__setattr__(self, "leaves_length", capacity)
        elif (
            self.leaves_length < 1
            or self.leaves_length & (self.leaves_length - 1)
            or self.leaves_length > capacity
        ):
            raise ValueError(
                f"leaves_length must be a power of two <= {capacity}, got {self.leaves_length}"
            )

        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    def copy(self) -> "PolicyEngineConfig":
        return replace(self)
