"""
Teleport Exception Hierarchy

All exceptions inherit from TeleportError for easy catching.
"""


class TeleportError(Exception):
    """Base exception for all teleport errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(TeleportError):
    """Raised when data validation fails"""
    pass


class ConfigError(TeleportError):
    """Raised when configuration cannot be loaded or is invalid"""
    pass


class AuthorizationError(TeleportError):
    """Raised when a caller is not on the allow-list for a privileged operation"""
    pass


class LedgerError(TeleportError):
    """Raised when a ledger primitive cannot be applied"""
    pass


class InsufficientEscrowError(LedgerError):
    """Raised when a release asks for more than the escrow holds"""
    pass


class ShutdownPendingError(TeleportError):
    """Raised when a ceiling change is attempted after cage()"""
    pass


class NothingToReleaseError(TeleportError):
    """Raised when guest release() is called while grain <= limit"""
    pass


class InsufficientQuorumError(TeleportError):
    """Raised when fewer distinct valid oracle signatures than the threshold"""
    pass


class ReplayError(TeleportError):
    """Raised when a GUID (or its source nonce) was already minted"""
    pass


class FeeExceededError(TeleportError):
    """Raised when fees exceed what the requester accepted"""
    pass


class SyncError(TeleportError):
    """Base class for synchronizer errors"""
    pass


class SyncPersistenceError(SyncError):
    """Raised when a batch and its checkpoint could not be committed together"""
    pass


class StaleChainStateError(SyncError):
    """Raised when the chain tip cannot be read or is inconsistent"""
    pass
