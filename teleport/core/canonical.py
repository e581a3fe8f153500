"""
Canonical JSON (RFC 8785, JCS) for every JSON-shaped hash in the package:
audit record chaining and cross-domain message ids. The GUID has its own
fixed-width codec in teleport/core/guid.py because its hash is a wire
contract shared with other domains.

JCS encodes numbers as IEEE doubles, so integers above 2**53 would be
silently rounded. Token amounts and fixed-point values therefore travel
as decimal strings; stringify_values() does that conversion.
"""

import hashlib
from typing import Any, Dict, Mapping

import jcs


def canonicalize(obj: Mapping[str, Any]) -> bytes:
    """UTF-8 RFC 8785 bytes of obj. Independent of key insertion order."""
    return jcs.canonicalize(obj)


def canonical_hash(obj: Mapping[str, Any]) -> str:
    """Lowercase hex SHA-256 of canonicalize(obj)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()


def stringify_values(payload: Mapping[str, Any]) -> Dict[str, str]:
    """Flat payload with every value as str, safe to hash with JCS."""
    return {key: str(value) for key, value in payload.items()}
