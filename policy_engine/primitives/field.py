"""Aleo base field GF(p).

Uses the galois library for the field type. Field elements travel through the
rest of the package as plain ``int`` values; ``FF`` is the range authority.
"""

import galois

from policy_engine.errors import InvalidInputError

# --- Field Construction ---

FIELD_MODULUS = 8444461749428370424248824938781546531375899335154063827935233455917409239041
"""Order of the Aleo ``field`` type (BLS12-377 scalar field)."""

FIELD_PRIMITIVE_ELEMENT = 22

# Supplying the generator skips the factorisation of p - 1 that galois would
# otherwise run at import.
FF = galois.GF(FIELD_MODULUS, primitive_element=FIELD_PRIMITIVE_ELEMENT, verify=False)
"""Base field GF(p) - Aleo field."""

FIELD_BYTES = 32

SENTINEL_FIELD = 0
"""Reserved padding leaf. No real identity may project to it."""


# --- Conversions ---

def to_field_element(value: int) -> int:
    """Validate that ``value`` is a canonical field element and return it as int."""
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Not a field element: {value!r}") from e
    try:
        return int(FF(value))
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Value {value} is outside the field [0, {FIELD_MODULUS})") from e


def field_bytes(value: int) -> bytes:
    """32-byte little-endian encoding of a field element."""
    return to_field_element(value).to_bytes(FIELD_BYTES, "little")


def reduce_bytes(data: bytes) -> int:
    """Interpret ``data`` little-endian and reduce it into the field."""
    return int(FF(int.from_bytes(data, "little") % FIELD_MODULUS))
