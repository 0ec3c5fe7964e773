"""
Two-to-one field hashing with domain separation.

Tree construction only needs ``hash(prefix, left, right) -> field``. The prefix
separates leaf-level pairs from internal nodes so that a leaf pair can never be
replayed as an internal node or vice versa.

Hashers are explicit objects owned by whoever builds trees; nothing here keeps
a process-wide instance.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Callable, Optional

from policy_engine.errors import InvalidInputError
from policy_engine.primitives.field import field_bytes, reduce_bytes, to_field_element

# --- Domain separation ---

LEAF_PREFIX = 1
"""Prefix for hashing pairs of leaves (``1field`` on chain)."""

NODE_PREFIX = 0
"""Prefix for hashing pairs of internal nodes (``0field`` on chain)."""


class FieldHasher(ABC):
    """Hashes ``(prefix, left, right)`` to a field element."""

    def hash(self, prefix: int, left: Optional[int], right: Optional[int]) -> int:
        """
        Hash two field elements under a domain-separation prefix.

        Args:
            prefix: LEAF_PREFIX or NODE_PREFIX
            left: Left operand (field element)
            right: Right operand (field element)

        Returns:
            Field element as int

        Raises:
            InvalidInputError: If an operand is missing or outside the field
        """
        if left is None or right is None:
            raise InvalidInputError("Invalid inputs: elements cannot be empty")
        return to_field_element(
            self._hash(
                to_field_element(prefix),
                to_field_element(left),
                to_field_element(right),
            )
        )

    @abstractmethod
    def _hash(self, prefix: int, left: int, right: int) -> int:
        """Hash validated operands."""


class Blake2FieldHasher(FieldHasher):
    """BLAKE2b over the 32-byte little-endian operands, reduced into the field.

    Off-chain only: it does not reproduce the program's Poseidon4 roots. Use
    CallableHasher around a Poseidon binding to match on-chain state.
    """

    PERSONALIZATION = b"aleo.freezelist"

    def __init__(self, personalization: bytes = PERSONALIZATION):
        if len(personalization) > hashlib.blake2b.PERSON_SIZE:
            raise ValueError(
                f"personalization must be at most {hashlib.blake2b.PERSON_SIZE} bytes"
            )
        self.personalization = personalization

    def _hash(self, prefix: int, left: int, right: int) -> int:
        h = hashlib.blake2b(digest_size=64, person=self.personalization)
        h.update(field_bytes(prefix))
        h.update(field_bytes(left))
        h.update(field_bytes(right))
        return reduce_bytes(h.digest())


class CallableHasher(FieldHasher):
    """Adapts ``fn(prefix, left, right) -> int`` (e.g. a Poseidon4 binding)."""

    def __init__(self, fn: Callable[[int, int, int], int]):
        self._fn = fn

    def _hash(self, prefix: int, left: int, right: int) -> int:
        return int(self._fn(prefix, left, right))


__all__ = [
    "LEAF_PREFIX",
    "NODE_PREFIX",
    "FieldHasher",
    "Blake2FieldHasher",
    "CallableHasher",
]
