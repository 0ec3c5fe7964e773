"""Tests for registry reconstruction and witness generation."""

import logging
from unittest import mock

import pytest
import requests

from policy_engine.errors import (
    CapacityExceededError,
    FetchFailedError,
    IdentityFrozenError,
    InvalidInputError,
    RegistryError,
)
from policy_engine.primitives.conversion import ZERO_ADDRESS, address_to_field, field_to_address
from policy_engine.primitives.hashing import LEAF_PREFIX, NODE_PREFIX
from policy_engine.protocol.api_client import AleoAPIClient
from policy_engine.protocol.config import PolicyEngineConfig
from policy_engine.protocol.engine import PolicyEngine
from policy_engine.protocol.registry import SOURCE_CHAIN, SOURCE_DERIVED
from tests.vectors import ADDRESS_A, ADDRESS_B, ENDPOINT, NETWORK, PROGRAM_ID


class FakeMappingClient:
    """In-memory stand-in for AleoAPIClient.fetch_mapping.

    ``values`` maps (mapping_name, key) to a string or an exception instance.
    """

    def __init__(self, values):
        self.values = dict(values)
        self.calls = []

    def fetch_mapping(self, program_id, mapping_name, key):
        self.calls.append((program_id, mapping_name, key))
        value = self.values.get((mapping_name, key))
        if isinstance(value, Exception):
            raise value
        return value


def registry_values(addresses, last_index=None, root=None):
    values = {("freeze_list_index", f"{i}u32"): a for i, a in enumerate(addresses)}
    if last_index is not None:
        values[("freeze_list_last_index", "true")] = f"{last_index}u32"
    if root is not None:
        values[("freeze_list_root", "1u8")] = f"{root}field"
    return values


def fetch_failure(url="http://node/x"):
    return FetchFailedError(url, 3, requests.ConnectionError("Network error"))


@pytest.fixture
def config() -> PolicyEngineConfig:
    return PolicyEngineConfig(endpoint=ENDPOINT, network=NETWORK, max_retries=3, retry_delay_ms=100)


def make_engine(config, values) -> PolicyEngine:
    return PolicyEngine(config, client=FakeMappingClient(values))


class TestConfig:
    """Tests for engine configuration."""

    def test_defaults(self) -> None:
        config = PolicyEngine().get_config()
        assert config.endpoint == "https://api.explorer.provable.com/v1"
        assert config.network == "mainnet"
        assert config.max_tree_depth == 15
        assert config.leaves_length == 2 ** 14
        assert config.max_retries == 5
        assert config.retry_delay_ms == 2000

    def test_get_config_returns_copy(self, config) -> None:
        engine = PolicyEngine(config)
        assert engine.get_config() == engine.get_config()
        assert engine.get_config() is not engine.config

    @pytest.mark.parametrize("kwargs", [
        {"max_tree_depth": 0},
        {"max_retries": 0},
        {"retry_delay_ms": -1},
        {"leaves_length": 3},
        {"leaves_length": 2 ** 15},
        {"endpoint": ""},
        {"timeout": 0},
    ])
    def test_invalid(self, kwargs) -> None:
        with pytest.raises(ValueError):
            PolicyEngineConfig(**kwargs)

    def test_leaves_length_follows_depth(self) -> None:
        assert PolicyEngineConfig(max_tree_depth=4).leaves_length == 8


class TestFetchRegistry:
    """Tests for fetch_registry."""

    def test_reads_until_gap(self, config, addresses) -> None:
        engine = make_engine(config, registry_values(addresses[:3], last_index=2, root=999))
        snapshot = engine.fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:3])
        assert snapshot.last_index.value == 2
        assert snapshot.last_index.source == SOURCE_CHAIN
        assert snapshot.root.value == 999
        assert snapshot.root.from_chain
        assert not snapshot.truncated
        assert snapshot.truncation_reason is None

    def test_probes_in_order(self, config, addresses) -> None:
        client = FakeMappingClient(registry_values(addresses[:2]))
        PolicyEngine(config, client=client).fetch_registry(PROGRAM_ID)
        index_keys = [key for _, mapping, key in client.calls if mapping == "freeze_list_index"]
        assert index_keys == ["0u32", "1u32", "2u32"]
        assert all(program_id == PROGRAM_ID for program_id, _, _ in client.calls)

    def test_filters_zero_address(self, config, addresses) -> None:
        raw = [addresses[0], ZERO_ADDRESS, addresses[1]]
        snapshot = make_engine(config, registry_values(raw, last_index=2)).fetch_registry(PROGRAM_ID)
        assert snapshot.identities == (addresses[0], addresses[1])
        assert not snapshot.truncated

    def test_empty_registry(self, config) -> None:
        snapshot = make_engine(config, {}).fetch_registry(PROGRAM_ID)
        assert snapshot.identities == ()
        assert snapshot.last_index.value is None
        assert snapshot.root.value is None

    def test_missing_scalars_are_derived(self, config, addresses) -> None:
        snapshot = make_engine(config, registry_values(addresses[:4])).fetch_registry(PROGRAM_ID)
        assert snapshot.last_index.value == 3
        assert snapshot.last_index.source == SOURCE_DERIVED
        assert "not set" in snapshot.last_index.reason
        assert snapshot.root.value is None
        assert snapshot.root.source == SOURCE_DERIVED

    def test_failed_scalar_reads_are_derived(self, config, addresses) -> None:
        values = registry_values(addresses[:2])
        values[("freeze_list_last_index", "true")] = fetch_failure()
        values[("freeze_list_root", "1u8")] = fetch_failure()
        snapshot = make_engine(config, values).fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:2])
        assert snapshot.last_index.value == 1
        assert "read failed" in snapshot.last_index.reason
        assert snapshot.root.value is None
        assert "read failed" in snapshot.root.reason

    def test_unparseable_scalar_is_derived(self, config, addresses) -> None:
        values = registry_values(addresses[:2])
        values[("freeze_list_last_index", "true")] = "banana"
        snapshot = make_engine(config, values).fetch_registry(PROGRAM_ID)
        assert snapshot.last_index.source == SOURCE_DERIVED
        assert "unparseable" in snapshot.last_index.reason

    def test_probe_failure_truncates(self, config, addresses, caplog) -> None:
        values = registry_values(addresses[:5], last_index=4)
        values[("freeze_list_index", "2u32")] = fetch_failure()
        with caplog.at_level(logging.WARNING, logger="policy_engine"):
            snapshot = make_engine(config, values).fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:2])
        assert snapshot.truncated
        assert "index 2" in snapshot.truncation_reason
        assert any("truncated" in r.getMessage() for r in caplog.records)

    def test_short_list_against_last_index_truncates(self, config, addresses) -> None:
        snapshot = make_engine(config, registry_values(addresses[:2], last_index=5)).fetch_registry(PROGRAM_ID)
        assert snapshot.truncated
        assert "last index 5" in snapshot.truncation_reason

    def test_probe_limit(self, addresses) -> None:
        config = PolicyEngineConfig(endpoint=ENDPOINT, network=NETWORK, max_tree_depth=3)
        client = FakeMappingClient(registry_values(addresses[:6], last_index=5))
        snapshot = PolicyEngine(config, client=client).fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:4])
        assert snapshot.truncated
        index_calls = [c for c in client.calls if c[1] == "freeze_list_index"]
        assert len(index_calls) == 5
        assert "probe limit 4" in snapshot.truncation_reason

    def test_probe_limit_without_last_index(self, addresses) -> None:
        config = PolicyEngineConfig(endpoint=ENDPOINT, network=NETWORK, max_tree_depth=3)
        snapshot = make_engine(config, registry_values(addresses[:6])).fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:4])
        assert snapshot.last_index.source == SOURCE_DERIVED
        assert snapshot.truncated
        assert "probe limit 4" in snapshot.truncation_reason

    def test_full_list_at_probe_limit(self, addresses) -> None:
        config = PolicyEngineConfig(endpoint=ENDPOINT, network=NETWORK, max_tree_depth=3)
        snapshot = make_engine(config, registry_values(addresses[:4])).fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:4])
        assert not snapshot.truncated

    def test_empty_entry_ends_list(self, config, addresses) -> None:
        values = registry_values(addresses[:4])
        values[("freeze_list_index", "2u32")] = ""
        engine = make_engine(config, values)
        snapshot = engine.fetch_registry(PROGRAM_ID)

        assert snapshot.identities == tuple(addresses[:2])
        assert "" not in snapshot.identities
        witness = engine.build_witness(field_to_address(15), program_id=PROGRAM_ID)
        assert witness.identities == tuple(addresses[:2])

    def test_empty_scalar_is_derived(self, config, addresses) -> None:
        values = registry_values(addresses[:2])
        values[("freeze_list_last_index", "true")] = ""
        snapshot = make_engine(config, values).fetch_registry(PROGRAM_ID)
        assert snapshot.last_index.value == 1
        assert "not set" in snapshot.last_index.reason


class TestFetchCurrentRoot:
    """Tests for fetch_current_root."""

    @pytest.mark.parametrize("raw,expected", [
        ("123456789field", 123456789),
        ("999field", 999),
        ("777FIELD", 777),
    ])
    def test_parses_root(self, config, raw: str, expected: int) -> None:
        client = FakeMappingClient({("freeze_list_root", "1u8"): raw})
        assert PolicyEngine(config, client=client).fetch_current_root(PROGRAM_ID) == expected
        assert client.calls == [(PROGRAM_ID, "freeze_list_root", "1u8")]

    def test_missing_root(self, config) -> None:
        with pytest.raises(RegistryError, match="freeze_list_root for program"):
            make_engine(config, {}).fetch_current_root(PROGRAM_ID)

    def test_empty_root(self, config) -> None:
        with pytest.raises(RegistryError):
            make_engine(config, {("freeze_list_root", "1u8"): ""}).fetch_current_root(PROGRAM_ID)

    def test_fetch_failure_propagates(self, config) -> None:
        engine = make_engine(config, {("freeze_list_root", "1u8"): fetch_failure()})
        with pytest.raises(FetchFailedError, match="Failed to fetch after 3 attempts"):
            engine.fetch_current_root(PROGRAM_ID)


class TestTreeUtilities:
    """Tests for build_tree and compute_root."""

    def test_build_tree(self, config) -> None:
        tree = PolicyEngine(config).build_tree([ADDRESS_A, ADDRESS_B])
        assert len(tree) == 3

    def test_empty_list(self, config) -> None:
        tree = PolicyEngine(config).build_tree([])
        assert len(tree) == 3
        assert tree[:2] == [0, 0]

    def test_compute_root(self, config) -> None:
        engine = PolicyEngine(config)
        tree = engine.build_tree([ADDRESS_A, ADDRESS_B])
        assert engine.compute_root([ADDRESS_A, ADDRESS_B]) == tree[-1]
        assert tree[-1] == engine.hasher.hash(LEAF_PREFIX, tree[0], tree[1])

    def test_root_independent_of_order(self, config, addresses) -> None:
        engine = PolicyEngine(config)
        assert engine.compute_root(addresses) == engine.compute_root(list(reversed(addresses)))

    def test_different_inputs_differ(self, config) -> None:
        engine = PolicyEngine(config)
        assert engine.compute_root([ADDRESS_A]) != engine.compute_root([ADDRESS_B])

    def test_capacity(self, addresses) -> None:
        engine = PolicyEngine(PolicyEngineConfig(max_tree_depth=2))
        with pytest.raises(CapacityExceededError):
            engine.build_tree(addresses[:3])


class TestBuildWitness:
    """Tests for build_witness."""

    def test_brackets_query(self, config) -> None:
        a, c, b = (field_to_address(v) for v in (10, 20, 30))
        engine = PolicyEngine(config)
        witness = engine.build_witness(c, identities=[b, a])
        left, right = witness.proofs

        assert left.siblings[0] == address_to_field(a)
        assert right.siblings[0] == address_to_field(b)
        assert (left.leaf_index, right.leaf_index) == (0, 1)
        assert witness.root == engine.compute_root([a, b])
        assert witness.identities == (b, a)
        assert witness.snapshot is None

    def test_proof_depth(self, config, addresses) -> None:
        witness = PolicyEngine(config).build_witness(field_to_address(25), identities=addresses)
        for proof in witness.proofs:
            assert len(proof.siblings) == config.max_tree_depth + 1

    def test_proofs_share_root(self, config, addresses) -> None:
        engine = PolicyEngine(config)
        witness = engine.build_witness(field_to_address(45), identities=addresses)
        tree = engine.build_tree(addresses)
        left, right = witness.proofs
        assert (left.leaf_index, right.leaf_index) == (3, 4)
        # leaves 3 and 4 sit under different halves; the top sibling of one is the other's subtree root
        assert left.siblings[3] == tree[13]
        assert right.siblings[3] == tree[12]
        assert tree[-1] == engine.hasher.hash(NODE_PREFIX, tree[12], tree[13])
        assert witness.root == tree[-1]

    def test_query_below_range(self, config, addresses) -> None:
        witness = PolicyEngine(config).build_witness(field_to_address(5), identities=addresses)
        assert [p.leaf_index for p in witness.proofs] == [0, 0]

    def test_query_above_range(self, config, addresses) -> None:
        witness = PolicyEngine(config).build_witness(field_to_address(500), identities=addresses)
        assert [p.leaf_index for p in witness.proofs] == [7, 7]

    def test_empty_list(self, config) -> None:
        witness = PolicyEngine(config).build_witness(ADDRESS_A, identities=[])
        assert [p.leaf_index for p in witness.proofs] == [1, 1]
        assert witness.proofs[0].siblings[0] == 0

    def test_idempotent(self, config, addresses) -> None:
        engine = PolicyEngine(config)
        query = field_to_address(33)
        assert engine.build_witness(query, identities=addresses) == \
            engine.build_witness(query, identities=addresses)

    def test_frozen_identity(self, config, addresses) -> None:
        with pytest.raises(IdentityFrozenError):
            PolicyEngine(config).build_witness(addresses[2], identities=addresses)

    def test_requires_list_or_program(self, config) -> None:
        with pytest.raises(InvalidInputError, match="identities or program_id"):
            PolicyEngine(config).build_witness(ADDRESS_A)

    def test_fetches_when_list_missing(self, config, addresses) -> None:
        engine = make_engine(config, registry_values(addresses[:4], last_index=3, root=1))
        witness = engine.build_witness(field_to_address(25), program_id=PROGRAM_ID)

        assert witness.identities == tuple(addresses[:4])
        assert witness.snapshot is not None
        assert witness.snapshot.identities == witness.identities
        assert witness.root == engine.compute_root(addresses[:4])

    def test_explicit_list_skips_fetch(self, config, addresses) -> None:
        client = FakeMappingClient({})
        PolicyEngine(config, client=client).build_witness(
            field_to_address(25), identities=addresses, program_id=PROGRAM_ID
        )
        assert client.calls == []


class TestEndToEndHttp:
    """build_witness through the real client with requests.get mocked."""

    def test_witness_from_node(self, config, sleeper, addresses) -> None:
        registry = {
            f"freeze_list_index/{i}u32": f'"{address}"' for i, address in enumerate(addresses[:3])
        }
        registry["freeze_list_last_index/true"] = '"2u32"'
        registry["freeze_list_root/1u8"] = '"42field"'
        attempts = {"count": 0}

        def fake_get(url, timeout):
            suffix = url.split("/mapping/", 1)[1]
            # one transient failure exercises the retry path
            if suffix == "freeze_list_index/1u32" and attempts["count"] == 0:
                attempts["count"] += 1
                raise requests.ConnectionError("reset")
            response = requests.Response()
            response.url = url
            if suffix in registry:
                response.status_code = 200
                response._content = registry[suffix].encode()
            else:
                response.status_code = 404
                response._content = b""
            response.encoding = "utf-8"
            return response

        client = AleoAPIClient(config, sleep=sleeper)
        engine = PolicyEngine(config, client=client)
        with mock.patch("policy_engine.protocol.api_client.requests.get", side_effect=fake_get):
            witness = engine.build_witness(field_to_address(15), program_id=PROGRAM_ID)

        assert witness.identities == tuple(addresses[:3])
        assert witness.snapshot.root.value == 42
        assert witness.snapshot.last_index.value == 2
        assert not witness.snapshot.truncated
        assert len(sleeper.calls) == 1
        left, right = witness.proofs
        assert (left.siblings[0], right.siblings[0]) == (10, 20)
