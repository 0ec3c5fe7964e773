"""Protocol - Remote registry reads and witness orchestration."""

from policy_engine.protocol.api_client import AleoAPIClient
from policy_engine.protocol.backoff import compute_backoff, parse_retry_hint, sleep_ms
from policy_engine.protocol.config import PolicyEngineConfig
from policy_engine.protocol.engine import PolicyEngine
from policy_engine.protocol.registry import (
    Enrichment,
    NonInclusionWitness,
    RegistryFetcher,
    RegistrySnapshot,
)

__all__ = [
    # Backoff
    "compute_backoff",
    "parse_retry_hint",
    "sleep_ms",
    # Client
    "AleoAPIClient",
    "PolicyEngineConfig",
    # Registry
    "RegistryFetcher",
    "RegistrySnapshot",
    "Enrichment",
    # Engine
    "PolicyEngine",
    "NonInclusionWitness",
]
