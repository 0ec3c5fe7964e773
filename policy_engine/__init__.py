"""
Freeze-list non-inclusion proofs for Aleo compliance programs.

This package provides:
- Aleo field and address conversions
- Domain-separated two-to-one hashing
- Sorted Merkle tree construction and sibling paths
- A retrying mapping client and registry fetcher
- PolicyEngine, which ties them together into non-inclusion witnesses

Usage:
    from policy_engine import PolicyEngine, PolicyEngineConfig

    engine = PolicyEngine(PolicyEngineConfig(endpoint="http://localhost:3030",
                                             network="testnet"))
    witness = engine.build_witness("aleo1...", program_id="sealance_freezelist_registry.aleo")
"""

from policy_engine.errors import (
    CapacityExceededError,
    ClientError,
    FetchError,
    FetchFailedError,
    IdentityFrozenError,
    InvalidInputError,
    PolicyEngineError,
    RateLimitedError,
    RegistryError,
    ServerError,
    TransportError,
)
from policy_engine.logger import get_logger, setup_logging, silent_logger
from policy_engine.primitives import (
    ZERO_ADDRESS,
    Blake2FieldHasher,
    CallableHasher,
    FieldHasher,
    MerkleProof,
    address_to_field,
    build_tree,
    encode_leaves,
    extract_path,
    field_to_address,
    locate_boundary,
)
from policy_engine.protocol import (
    AleoAPIClient,
    Enrichment,
    NonInclusionWitness,
    PolicyEngine,
    PolicyEngineConfig,
    RegistrySnapshot,
    compute_backoff,
    parse_retry_hint,
)

__version__ = "0.1.0"
__all__ = [
    # Engine
    "PolicyEngine",
    "PolicyEngineConfig",
    "AleoAPIClient",
    "RegistrySnapshot",
    "Enrichment",
    "NonInclusionWitness",
    # Primitives
    "ZERO_ADDRESS",
    "address_to_field",
    "field_to_address",
    "encode_leaves",
    "build_tree",
    "locate_boundary",
    "extract_path",
    "MerkleProof",
    "FieldHasher",
    "Blake2FieldHasher",
    "CallableHasher",
    # Backoff
    "compute_backoff",
    "parse_retry_hint",
    # Logging
    "get_logger",
    "silent_logger",
    "setup_logging",
    # Errors
    "PolicyEngineError",
    "InvalidInputError",
    "CapacityExceededError",
    "FetchError",
    "RateLimitedError",
    "ClientError",
    "ServerError",
    "TransportError",
    "FetchFailedError",
    "RegistryError",
    "IdentityFrozenError",
]
