"""
teleport/core/time.py

Two clocks, one module.

    unix_now()        : integer seconds, the GUID timestamp and fee TTL clock
    audit_timestamp() : YYYY-MM-DDTHH:MM:SS.mmmZ, the audit record wire format
"""

import time
from datetime import datetime, timezone


def unix_now() -> int:
    """Current UTC time as integer unix seconds."""
    return int(time.time())


def audit_timestamp() -> str:
    """
    Return current UTC time in audit wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"
