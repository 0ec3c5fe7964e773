"""Freeze-list registry reconstruction from on-chain mappings.

The list is read by probing ``freeze_list_index`` at 0, 1, 2, ... until the
first absent key. The last-index and root scalars are best-effort enrichment:
when they cannot be read the snapshot carries a derived value and the reason.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Tuple, TypeVar

from policy_engine.errors import FetchError, InvalidInputError
from policy_engine.logger import get_logger, log_event
from policy_engine.primitives.conversion import (
    ZERO_ADDRESS,
    format_u32,
    parse_field_literal,
    parse_u32_literal,
)
from policy_engine.primitives.merkle_tree import MerkleProof
from policy_engine.protocol.api_client import AleoAPIClient

# --- Mappings ---

FREEZE_LIST_INDEX_MAPPING = "freeze_list_index"
FREEZE_LIST_LAST_INDEX_MAPPING = "freeze_list_last_index"
FREEZE_LIST_LAST_INDEX_KEY = "true"
FREEZE_LIST_ROOT_MAPPING = "freeze_list_root"
FREEZE_LIST_ROOT_KEY = "1u8"

SOURCE_CHAIN = "chain"
SOURCE_DERIVED = "derived"

T = TypeVar("T")


# --- Data Classes ---

@dataclass(frozen=True)
class Enrichment(Generic[T]):
    """A best-effort value: read from chain, or derived with the reason why."""
    value: Optional[T]
    source: str
    reason: Optional[str] = None

    @property
    def from_chain(self) -> bool:
        return self.source == SOURCE_CHAIN


@dataclass(frozen=True)
class RegistrySnapshot:
    """Registry contents observed by one fetch.

    Attributes:
        identities: Registry addresses in on-chain index order, sentinel removed
        last_index: On-chain last index, or the last probed index if unreadable
        root: On-chain root, or None if unreadable
        truncated: True if the probe loop may have stopped before the real end
        truncation_reason: Why ``truncated`` is set
    """
    identities: Tuple[str, ...]
    last_index: Enrichment[int]
    root: Enrichment[int]
    truncated: bool = False
    truncation_reason: Optional[str] = None


@dataclass(frozen=True)
class NonInclusionWitness:
    """Left and right bracket proofs for one identity.

    Attributes:
        proofs: (left, right) proofs; their first sibling is the bracketing leaf
        root: Root of the tree the proofs were extracted from
        identities: The identity list the tree was built from
        snapshot: Registry snapshot when the list was fetched, else None
    """
    proofs: Tuple[MerkleProof, MerkleProof]
    root: int
    identities: Tuple[str, ...]
    snapshot: Optional[RegistrySnapshot] = field(default=None, compare=False)


# --- Fetcher ---

class RegistryFetcher:
    """Reads a freeze-list registry program through an AleoAPIClient."""

    def __init__(
        self,
        client: AleoAPIClient,
        max_probes: int,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.max_probes = max_probes
        self.logger = logger or get_logger(__name__)

    def fetch(self, program_id: str) -> RegistrySnapshot:
        """Probe the list, then enrich with last index and root."""
        raw, truncation_reason = self._probe_list(program_id)
        identities = tuple(address for address in raw if address != ZERO_ADDRESS)

        last_index = self._read_scalar(
            program_id,
            FREEZE_LIST_LAST_INDEX_MAPPING,
            FREEZE_LIST_LAST_INDEX_KEY,
            parse_u32_literal,
            fallback=len(raw) - 1 if raw else None,
        )
        root = self._read_scalar(
            program_id,
            FREEZE_LIST_ROOT_MAPPING,
            FREEZE_LIST_ROOT_KEY,
            parse_field_literal,
            fallback=None,
        )

        if (
            truncation_reason is None
            and last_index.from_chain
            and last_index.value is not None
            and last_index.value >= len(raw)
        ):
            truncation_reason = (
                f"on-chain last index {last_index.value} but only {len(raw)} entries retrieved"
            )

        if truncation_reason is not None:
            log_event(self.logger, logging.WARNING, "Freeze list may be truncated",
                      {"program_id": program_id, "retrieved": len(raw), "reason": truncation_reason})

        log_event(self.logger, logging.INFO, "Fetched freeze list",
                  {"program_id": program_id, "addresses": len(identities),
                   "last_index": last_index.value, "root_source": root.source})

        return RegistrySnapshot(
            identities=identities,
            last_index=last_index,
            root=root,
            truncated=truncation_reason is not None,
            truncation_reason=truncation_reason,
        )

    # --- Internal Helpers ---

    def _probe_list(self, program_id: str) -> Tuple[List[str], Optional[str]]:
        """Read indices in order until a gap, the probe limit, or a failure.

        Returns the addresses read and, when the list may continue past them,
        the reason it was cut short.
        """
        addresses: List[str] = []
        for index in range(self.max_probes + 1):
            try:
                value = self.client.fetch_mapping(
                    program_id, FREEZE_LIST_INDEX_MAPPING, format_u32(index)
                )
            except FetchError as e:
                return addresses, f"probe of index {index} failed: {e}"
            if not value:
                return addresses, None
            if index == self.max_probes:
                # one read past the limit tells a full list from a longer one
                log_event(self.logger, logging.DEBUG, "Probe limit reached",
                          {"program_id": program_id, "max_probes": self.max_probes})
                return addresses, f"probe limit {self.max_probes} reached with index {index} still set"
            addresses.append(value)
        return addresses, None

    def _read_scalar(
        self,
        program_id: str,
        mapping_name: str,
        key: str,
        parse: Callable[[str], T],
        fallback: Optional[T],
    ) -> Enrichment[T]:
        try:
            raw = self.client.fetch_mapping(program_id, mapping_name, key)
        except FetchError as e:
            reason = f"{mapping_name} read failed: {e}"
        else:
            if not raw:
                reason = f"{mapping_name} not set"
            else:
                try:
                    return Enrichment(parse(raw), SOURCE_CHAIN)
                except InvalidInputError as e:
                    reason = f"{mapping_name} unparseable: {e}"

        log_event(self.logger, logging.WARNING, "Using derived value",
                  {"program_id": program_id, "mapping": mapping_name, "reason": reason})
        return Enrichment(fallback, SOURCE_DERIVED, reason)
