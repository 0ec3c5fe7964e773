"""Primitives - Field, address conversion, hashing and the sorted Merkle tree."""

from policy_engine.primitives.conversion import (
    ZERO_ADDRESS,
    address_to_field,
    field_to_address,
    format_field,
    format_u32,
    parse_field_literal,
    parse_u32_literal,
    string_to_bigint,
)
from policy_engine.primitives.field import (
    FF,
    FIELD_MODULUS,
    SENTINEL_FIELD,
    to_field_element,
)
from policy_engine.primitives.hashing import (
    LEAF_PREFIX,
    NODE_PREFIX,
    Blake2FieldHasher,
    CallableHasher,
    FieldHasher,
)
from policy_engine.primitives.merkle_tree import (
    MerkleProof,
    build_tree,
    contains_value,
    encode_leaves,
    extract_path,
    leaf_indices_for_value,
    level_offsets,
    locate_boundary,
    tree_root,
)

__all__ = [
    # Field
    "FF",
    "FIELD_MODULUS",
    "SENTINEL_FIELD",
    "to_field_element",
    # Conversion
    "ZERO_ADDRESS",
    "address_to_field",
    "field_to_address",
    "string_to_bigint",
    "format_field",
    "parse_field_literal",
    "format_u32",
    "parse_u32_literal",
    # Hashing
    "LEAF_PREFIX",
    "NODE_PREFIX",
    "FieldHasher",
    "Blake2FieldHasher",
    "CallableHasher",
    # Merkle Tree
    "MerkleProof",
    "encode_leaves",
    "build_tree",
    "leaf_indices_for_value",
    "locate_boundary",
    "contains_value",
    "extract_path",
    "level_offsets",
    "tree_root",
]
