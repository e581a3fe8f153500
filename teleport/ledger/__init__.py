"""
Teleport Ledger - accounting collaborator contract, reference ledger,
and the append-only audit trail.
"""

from teleport.ledger.audit import AuditLog, AuditRecord
from teleport.ledger.handle import LedgerHandle
from teleport.ledger.memory import MemoryLedger

__all__ = ["AuditLog", "AuditRecord", "LedgerHandle", "MemoryLedger"]
