"""Sorted Merkle tree over identity field elements.

The tree is stored flattened, level by level, leaves first and root last:
for L leaves it holds 2L - 1 values. Leaves are ascending, so two adjacent
leaves bracketing a query prove the query is not itself a leaf.
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import numpy as np

from policy_engine.errors import CapacityExceededError, InvalidInputError
from policy_engine.primitives.conversion import ZERO_ADDRESS, address_to_field
from policy_engine.primitives.field import SENTINEL_FIELD, to_field_element
from policy_engine.primitives.hashing import LEAF_PREFIX, NODE_PREFIX, FieldHasher

# --- Constants ---

DEFAULT_MAX_DEPTH = 15

# --- Type Aliases ---

LeafSequence = List[int]
FlatTree = List[int]
IdentityToField = Callable[[str], int]


# --- Data Classes ---

@dataclass(frozen=True)
class MerkleProof:
    """Authentication path for one leaf.

    Attributes:
        siblings: The leaf value followed by one sibling per level, zero-padded
            to the target depth
        leaf_index: Position of the leaf in the leaf level
    """
    siblings: Tuple[int, ...]
    leaf_index: int


# --- Layout ---

def level_offsets(n_leaves: int) -> List[Tuple[int, int]]:
    """(offset, size) of every level in the flattened tree, leaves first."""
    levels = [(0, n_leaves)]
    offset, size = 0, n_leaves
    while size > 1:
        offset += size
        size //= 2
        levels.append((offset, size))
    return levels


def tree_leaf_count(tree: Sequence[int]) -> int:
    """Number of leaves of a flattened tree (``(len + 1) / 2``)."""
    n_leaves = (len(tree) + 1) // 2
    if n_leaves < 2 or n_leaves & (n_leaves - 1) or len(tree) != 2 * n_leaves - 1:
        raise InvalidInputError(f"Not a complete binary tree: {len(tree)} nodes")
    return n_leaves


def tree_root(tree: Sequence[int]) -> int:
    tree_leaf_count(tree)
    return tree[-1]


# --- Leaf Encoding ---

def encode_leaves(
    identities: Sequence[str],
    max_depth: int = DEFAULT_MAX_DEPTH,
    to_field: IdentityToField = address_to_field,
) -> LeafSequence:
    """Project identities to field elements, sort, and left-pad with sentinels.

    Args:
        identities: Addresses, in any order. ZERO_ADDRESS entries are dropped.
        max_depth: Tree depth; at most 2^(max_depth - 1) identities fit
        to_field: Identity projection

    Returns:
        Ascending leaves, length a power of two >= 2

    Raises:
        CapacityExceededError: If there are more identities than fit
        InvalidInputError: If a non-sentinel identity projects to the sentinel
    """
    if max_depth < 1:
        raise InvalidInputError(f"max_depth must be positive, got {max_depth}")
    max_leaves = 2 ** (max_depth - 1)

    real = [identity for identity in identities if identity != ZERO_ADDRESS]
    count = len(real)
    if count > max_leaves:
        raise CapacityExceededError(max_leaves, count)

    n_leaves = 2 if count <= 1 else 1 << (count - 1).bit_length()

    values = []
    for identity in real:
        value = to_field(identity)
        if value == SENTINEL_FIELD:
            raise InvalidInputError(f"Identity {identity} collides with the sentinel leaf")
        values.append(value)

    # list.sort is stable, so equal projections keep their input order
    values.sort()

    return [SENTINEL_FIELD] * (n_leaves - count) + values


# --- Tree Construction ---

def build_tree(leaves: Sequence[int], hasher: FieldHasher) -> FlatTree:
    """Build the flattened tree bottom-up.

    Leaf pairs hash under LEAF_PREFIX, every level above under NODE_PREFIX.
    """
    if len(leaves) == 0:
        raise InvalidInputError("Leaves array cannot be empty")
    if len(leaves) % 2 != 0:
        raise InvalidInputError("Leaves array must have even number of elements")
    if len(leaves) & (len(leaves) - 1):
        raise InvalidInputError(f"Leaves count must be a power of two, got {len(leaves)}")

    current = [to_field_element(leaf) for leaf in leaves]
    tree = list(current)
    prefix = LEAF_PREFIX

    while len(current) > 1:
        current = [
            hasher.hash(prefix, current[i], current[i + 1])
            for i in range(0, len(current), 2)
        ]
        tree.extend(current)
        prefix = NODE_PREFIX

    return tree


# --- Boundary Lookup ---

def _search_leaves(tree: Sequence[int], value: int) -> Tuple[int, int]:
    """(leaf count, smallest index r with leaf[r] >= value)."""
    n_leaves = tree_leaf_count(tree)
    leaves = np.array(tree[:n_leaves], dtype=object)
    needle = np.array([value], dtype=object)
    return n_leaves, int(np.searchsorted(leaves, needle, side="left")[0])


def leaf_indices_for_value(tree: Sequence[int], value: int) -> Tuple[int, int]:
    """Indices of the two adjacent leaves bracketing ``value``.

    Off either end both indices collapse onto the boundary leaf.
    """
    n_leaves, right = _search_leaves(tree, to_field_element(value))
    if right == n_leaves:
        return n_leaves - 1, n_leaves - 1
    if right == 0:
        return 0, 0
    return right - 1, right


def locate_boundary(
    tree: Sequence[int],
    identity: str,
    to_field: IdentityToField = address_to_field,
) -> Tuple[int, int]:
    """Non-inclusion bracket for an identity. See leaf_indices_for_value."""
    return leaf_indices_for_value(tree, to_field(identity))


def contains_value(tree: Sequence[int], value: int) -> bool:
    """Whether ``value`` is a real (non-sentinel) leaf of the tree."""
    value = to_field_element(value)
    if value == SENTINEL_FIELD:
        return False
    n_leaves, idx = _search_leaves(tree, value)
    return idx < n_leaves and tree[idx] == value


# --- Sibling Paths ---

def extract_path(tree: Sequence[int], leaf_index: int, target_depth: int) -> MerkleProof:
    """Leaf value plus sibling hashes up to the root, zero-padded.

    The result always has exactly ``target_depth`` entries.
    """
    n_leaves = tree_leaf_count(tree)
    if leaf_index < 0 or leaf_index >= n_leaves:
        raise InvalidInputError(f"Leaf index {leaf_index} out of range [0, {n_leaves})")

    siblings = [tree[leaf_index]]
    local = leaf_index
    for offset, _size in level_offsets(n_leaves)[:-1]:
        sibling = local + 1 if local % 2 == 0 else local - 1
        siblings.append(tree[offset + sibling])
        local //= 2

    if len(siblings) > target_depth:
        raise InvalidInputError(
            f"Tree needs {len(siblings)} path entries, more than target depth {target_depth}"
        )
    siblings.extend([SENTINEL_FIELD] * (target_depth - len(siblings)))

    return MerkleProof(siblings=tuple(siblings), leaf_index=leaf_index)
