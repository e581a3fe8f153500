"""
teleport/core/units.py

Fixed-point constants and fixed-width identifier helpers.

All arithmetic is on Python int. Never float.

    PRECISION   10**27   scale of internal ledger balances and debt ceilings
    BPS         10_000   denominator of fee percentages
"""

from teleport.core.exceptions import ValidationError

PRECISION = 10 ** 27
BPS       = 10_000

WORD_SIZE    = 32
ADDRESS_SIZE = 20

UINT48_MAX  = 2 ** 48 - 1
UINT80_MAX  = 2 ** 80 - 1
UINT128_MAX = 2 ** 128 - 1
UINT256_MAX = 2 ** 256 - 1


def div_up(x: int, y: int) -> int:
    """Integer division rounding toward +infinity. x >= 0, y > 0."""
    if y <= 0:
        raise ValueError("div_up requires a positive divisor")
    if x < 0:
        raise ValueError("div_up requires a non-negative dividend")
    return (x + y - 1) // y


def require_uint(name: str, value: int, maximum: int) -> int:
    """Return value if it is an int in [0, maximum], else raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", {"value": value})
    if value < 0 or value > maximum:
        raise ValidationError(
            f"{name} out of range",
            {"value": value, "max": maximum},
        )
    return value


def domain_to_bytes32(name: str) -> bytes:
    """
    Encode a domain name as a 32-byte word: UTF-8, right-padded with zeros.
    At most 31 bytes so the word stays NUL-terminated, e.g. "ETH-GOE-A".
    """
    if not isinstance(name, str) or not name:
        raise ValidationError("domain must be a non-empty string", {"value": name})
    raw = name.encode("utf-8")
    if len(raw) > WORD_SIZE - 1:
        raise ValidationError(
            "domain name longer than 31 bytes",
            {"value": name, "length": len(raw)},
        )
    return raw.ljust(WORD_SIZE, b"\x00")


def bytes32_to_domain(word: bytes) -> str:
    """Inverse of domain_to_bytes32."""
    return word.rstrip(b"\x00").decode("utf-8")


def identity_to_bytes32(identity: str) -> bytes:
    """
    Encode a 0x-prefixed hex identity (address or public key, up to 32
    bytes) as a 32-byte word, left-padded with zeros.
    """
    if not isinstance(identity, str) or not identity.startswith("0x"):
        raise ValidationError(
            "identity must be a 0x-prefixed hex string",
            {"value": identity},
        )
    body = identity[2:]
    if len(body) % 2:
        body = "0" + body
    try:
        raw = bytes.fromhex(body)
    except ValueError as exc:
        raise ValidationError("identity is not valid hex", {"value": identity}) from exc
    if len(raw) > WORD_SIZE:
        raise ValidationError(
            "identity longer than 32 bytes",
            {"value": identity, "length": len(raw)},
        )
    return raw.rjust(WORD_SIZE, b"\x00")


def normalize_identity(identity: str) -> str:
    """
    Canonical 0x-hex form of an identity: lowercase, left-padded to 20
    bytes (an address) or, when wider, to 32 bytes (a public key).

    Identities that encode to the same word normalize to the same string,
    so "0xabc", "0x0abc" and "0x00..0abc" are one identity.
    """
    raw = identity_to_bytes32(identity).lstrip(b"\x00")
    width = ADDRESS_SIZE if len(raw) <= ADDRESS_SIZE else WORD_SIZE
    return "0x" + raw.rjust(width, b"\x00").hex()
