"""Address and literal conversions.

Aleo addresses are bech32m strings whose 32-byte payload, read little-endian,
is the address's field projection. Mapping values come back as Aleo literals
(``123field``, ``7u32``) and are parsed here.
"""

import re
from typing import List

import bech32

from policy_engine.errors import InvalidInputError
from policy_engine.primitives.field import FIELD_BYTES, to_field_element

# --- Constants ---

ADDRESS_HRP = "aleo"
BECH32M_CONST = 0x2BC830A3

ZERO_ADDRESS = "aleo1qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqq3ljyzc"
"""Address of field element 0, used as padding and as the sentinel identity."""

_FIELD_LITERAL = re.compile(r"^(\d+)field$", re.IGNORECASE)
_U32_LITERAL = re.compile(r"^(\d+)u32$", re.IGNORECASE)
U32_MAX = 2 ** 32 - 1


# --- Addresses ---

def _bech32m_checksum(hrp: str, words: List[int]) -> List[int]:
    polymod = bech32.bech32_polymod(bech32.bech32_hrp_expand(hrp) + words + [0] * 6)
    polymod ^= BECH32M_CONST
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def address_to_field(address: str) -> int:
    """Decode a bech32m Aleo address into its field element."""
    if not isinstance(address, str) or not address:
        raise InvalidInputError(f"Invalid address: {address!r}")
    if address.lower() != address and address.upper() != address:
        raise InvalidInputError(f"Mixed-case address: {address}")

    lowered = address.lower()
    sep = lowered.rfind("1")
    if sep < 1 or sep + 7 > len(lowered) or any(c not in bech32.CHARSET for c in lowered[sep + 1:]):
        raise InvalidInputError(f"Invalid address encoding: {address}")

    hrp = lowered[:sep]
    data = [bech32.CHARSET.find(c) for c in lowered[sep + 1:]]
    if bech32.bech32_polymod(bech32.bech32_hrp_expand(hrp) + data) != BECH32M_CONST:
        raise InvalidInputError(f"Address checksum is not valid bech32m: {address}")
    if hrp != ADDRESS_HRP:
        raise InvalidInputError(f"Address prefix must be '{ADDRESS_HRP}', got '{hrp}'")

    payload = bech32.convertbits(data[:-6], 5, 8, False)
    if payload is None or len(payload) > FIELD_BYTES:
        raise InvalidInputError(f"Invalid address payload: {address}")

    return to_field_element(int.from_bytes(bytes(payload), "little"))


def field_to_address(value: int) -> str:
    """Encode a field element as a bech32m Aleo address."""
    payload = to_field_element(value).to_bytes(FIELD_BYTES, "little")
    words = bech32.convertbits(list(payload), 8, 5, True)
    data = words + _bech32m_checksum(ADDRESS_HRP, words)
    return ADDRESS_HRP + "1" + "".join(bech32.CHARSET[d] for d in data)


def string_to_bigint(text: str) -> int:
    """Pack an ASCII string big-endian into an integer (token ids)."""
    value = 0
    for ch in text:
        value = (value << 8) + ord(ch)
    return value


# --- Aleo literals ---

def format_field(value: int) -> str:
    return f"{to_field_element(value)}field"


def parse_field_literal(literal: str) -> int:
    """Parse ``<digits>field`` (suffix case-insensitive) into a field element."""
    match = _FIELD_LITERAL.match(literal.strip()) if isinstance(literal, str) else None
    if match is None:
        raise InvalidInputError(f"Invalid field literal: {literal!r}")
    return to_field_element(int(match.group(1)))


def format_u32(value: int) -> str:
    if not 0 <= value <= U32_MAX:
        raise InvalidInputError(f"Value {value} does not fit in u32")
    return f"{value}u32"


def parse_u32_literal(literal: str) -> int:
    """Parse ``<digits>u32`` into an int."""
    match = _U32_LITERAL.match(literal.strip()) if isinstance(literal, str) else None
    if match is None:
        raise InvalidInputError(f"Invalid u32 literal: {literal!r}")
    value = int(match.group(1))
    if value > U32_MAX:
        raise InvalidInputError(f"Value {value} does not fit in u32")
    return value
