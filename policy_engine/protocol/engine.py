"""Non-inclusion witness generation against a freeze-list registry."""

import logging
from typing import Optional, Sequence

from policy_engine.errors import IdentityFrozenError, InvalidInputError, RegistryError
from policy_engine.logger import get_logger, log_event
from policy_engine.primitives.conversion import address_to_field, parse_field_literal
from policy_engine.primitives.hashing import Blake2FieldHasher, FieldHasher
from policy_engine.primitives.merkle_tree import (
    FlatTree,
    build_tree,
    contains_value,
    encode_leaves,
    extract_path,
    leaf_indices_for_value,
    tree_root,
)
from policy_engine.protocol.api_client import AleoAPIClient
from policy_engine.protocol.config import PolicyEngineConfig
from policy_engine.protocol.registry import (
    FREEZE_LIST_ROOT_KEY,
    FREEZE_LIST_ROOT_MAPPING,
    NonInclusionWitness,
    RegistryFetcher,
    RegistrySnapshot,
)


class PolicyEngine:
    """Builds freeze-list Merkle trees and non-inclusion witnesses.

    Usage:
        engine = PolicyEngine(PolicyEngineConfig(endpoint="http://localhost:3030",
                                                 network="testnet"))
        witness = engine.build_witness("aleo1...", program_id="sealance_freezelist_registry.aleo")
        left, right = witness.proofs
    """

    def __init__(
        self,
        config: Optional[PolicyEngineConfig] = None,
        hasher: Optional[FieldHasher] = None,
        client: Optional[AleoAPIClient] = None,
    ) -> None:
        self.config = config or PolicyEngineConfig()
        self.hasher = hasher or Blake2FieldHasher()
        self.logger: logging.Logger = self.config.logger or get_logger(__name__)
        self.client = client or AleoAPIClient(self.config)
        self.fetcher = RegistryFetcher(self.client, self.config.leaves_length, self.logger)

    # --- Chain Reads ---

    def fetch_registry(self, program_id: str) -> RegistrySnapshot:
        """Reconstruct the registry of ``program_id`` from its mappings."""
        return self.fetcher.fetch(program_id)

    def fetch_current_root(self, program_id: str) -> int:
        """Read only the on-chain root, e.g. to check a cached list for staleness.

        Raises:
            RegistryError: If the root mapping is not set
        """
        value = self.client.fetch_mapping(program_id, FREEZE_LIST_ROOT_MAPPING, FREEZE_LIST_ROOT_KEY)
        if not value:
            raise RegistryError(f"Failed to fetch {FREEZE_LIST_ROOT_MAPPING} for program {program_id}")
        return parse_field_literal(value)

    # --- Trees and Witnesses ---

    def build_tree(self, identities: Sequence[str]) -> FlatTree:
        """Flattened Merkle tree over ``identities``."""
        leaves = encode_leaves(identities, self.config.max_tree_depth)
        return build_tree(leaves, self.hasher)

    def compute_root(self, identities: Sequence[str]) -> int:
        return tree_root(self.build_tree(identities))

    def build_witness(
        self,
        identity: str,
        identities: Optional[Sequence[str]] = None,
        program_id: Optional[str] = None,
    ) -> NonInclusionWitness:
        """Two bracket proofs showing ``identity`` is not in the freeze list.

        Args:
            identity: Address to prove absent
            identities: Freeze list to use as-is (e.g. a cached copy)
            program_id: Registry program to fetch from when no list is given

        Returns:
            NonInclusionWitness with left/right proofs of depth max_tree_depth + 1

        Raises:
            InvalidInputError: If neither identities nor program_id is given
            IdentityFrozenError: If ``identity`` is in the freeze list
        """
        snapshot = None
        if identities is not None:
            used = tuple(identities)
        else:
            if not program_id:
                raise InvalidInputError("Either identities or program_id must be provided")
            snapshot = self.fetch_registry(program_id)
            used = snapshot.identities

        tree = self.build_tree(used)
        query = address_to_field(identity)
        if contains_value(tree, query):
            raise IdentityFrozenError(identity)

        left_index, right_index = leaf_indices_for_value(tree, query)
        depth = self.config.max_tree_depth + 1
        left = extract_path(tree, left_index, depth)
        right = extract_path(tree, right_index, depth)
        root = tree_root(tree)

        log_event(self.logger, logging.DEBUG, "Built non-inclusion witness",
                  {"identity": identity, "left_index": left_index,
                   "right_index": right_index, "leaves": len(used)})

        return NonInclusionWitness(
            proofs=(left, right),
            root=root,
            identities=used,
            snapshot=snapshot,
        )

    def get_config(self) -> PolicyEngineConfig:
        return self.config.copy()
