"""
teleport/ledger/audit.py

Append-only audit trail of controller and verifier state changes.

Audit records are observability, not correctness: controllers emit them
after a state change has been applied, and an external telemetry
collaborator tails the JSONL file.

Record contract:
    record_hash = SHA-256(JCS(record without record_hash))
    prev_hash   = record_hash of the previous record, GENESIS_HASH for the first
    sequence    = 0, 1, 2, ... without gaps

emit() MUST, in this exact order:
  1. Acquire lock
  2. Build the record against the current chain head
  3. Append to JSONL file (if file-backed)
  4. Advance internal state only after the write succeeded
"""

import json
import logging
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from teleport.core.canonical import canonical_hash
from teleport.core.time import audit_timestamp

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


@dataclass(frozen=True)
class AuditRecord:
    sequence:    int
    timestamp:   str
    source:      str
    event:       str
    payload:     Dict[str, Any]
    prev_hash:   str
    record_hash: str

    def to_hash_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        del d["record_hash"]
        return d

    def expected_hash(self) -> str:
        return canonical_hash(self.to_hash_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditRecord":
        return cls(
            sequence=    data["sequence"],
            timestamp=   data["timestamp"],
            source=      data["source"],
            event=       data["event"],
            payload=     data["payload"],
            prev_hash=   data["prev_hash"],
            record_hash= data["record_hash"],
        )


@dataclass
class AuditVerification:
    """Returned, not raised, so callers can choose hard fail vs report."""
    valid:         bool
    total_records: int
    errors:        List[str]

    def __bool__(self) -> bool:
        return self.valid


class AuditLog:
    """
    Hash-chained audit log. In-memory when path is None.

    State survives process restart by reading the tail of the file on
    __init__.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self._lock:    threading.Lock     = threading.Lock()
        self._records: List[AuditRecord]  = []
        self._path:    Optional[Path]     = Path(path) if path is not None else None
        self._sequence  = 0
        self._head_hash = GENESIS_HASH

        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def emit(self, source: str, event: str, payload: Dict[str, Any]) -> AuditRecord:
        """Append one record. Integers in payload must fit in 2**53; pass amounts as str."""
        with self._lock:
            body = {
                "sequence":  self._sequence,
                "timestamp": audit_timestamp(),
                "source":    source,
                "event":     event,
                "payload":   payload,
                "prev_hash": self._head_hash,
            }
            record = AuditRecord(record_hash=canonical_hash(body), **body)

            if self._path is not None:
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(record.to_dict()) + "\n")

            self._records.append(record)
            self._sequence  += 1
            self._head_hash  = record.record_hash
            return record

    @property
    def head_hash(self) -> str:
        return self._head_hash

    def records(self, event: Optional[str] = None) -> List[AuditRecord]:
        """Records emitted by this instance (not re-read from disk)."""
        with self._lock:
            return [r for r in self._records if event is None or r.event == event]

    # ── Verification ──────────────────────────────────────────

    @staticmethod
    def iter_file(path: Union[str, Path]) -> Iterator[AuditRecord]:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield AuditRecord.from_dict(json.loads(line))

    @classmethod
    def verify_file(cls, path: Union[str, Path]) -> AuditVerification:
        """
        Verify chain integrity from genesis.

        Raises OSError / ValueError / KeyError when the file is unreadable
        or malformed. Chain violations are reported in the result.
        """
        return verify_records(cls.iter_file(path))

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        if not self._path.exists():
            return
        last = None
        for record in self.iter_file(self._path):
            last = record
        if last is not None:
            self._sequence  = last.sequence + 1
            self._head_hash = last.record_hash
            logger.debug("Audit log %s restored at sequence %d", self._path, self._sequence)


def verify_records(records) -> AuditVerification:
    errors: List[str] = []
    expected_prev = GENESIS_HASH
    count = 0
    for i, record in enumerate(records):
        count += 1
        if record.sequence != i:
            errors.append(f"sequence gap at {i}: got {record.sequence}")
        if record.prev_hash != expected_prev:
            errors.append(f"chain break at {i}: prev_hash does not match record {i - 1}")
        if record.expected_hash() != record.record_hash:
            errors.append(f"record {i} hash mismatch: content was modified")
        expected_prev = record.record_hash
    return AuditVerification(valid=not errors, total_records=count, errors=errors)
