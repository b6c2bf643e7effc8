"""
Domain exceptions for the translation bot.

Fatal (startup only):
- ConfigurationError: invalid environment configuration
- CorruptStoreError: durable file cannot be read or parsed

Per request (caught at the dispatcher boundary):
- PersistenceError: write or rename failed, prior state retained
- AccessDenied: principal not on the allowlist
- InvalidCommand: malformed command text
"""
from typing import Optional


class ZungenredeError(Exception):
    """Base exception for all bot errors"""
    pass


class ConfigurationError(ZungenredeError):
    """Raised at startup when an environment value cannot be used"""
    pass


# ====================================================================================
# Store errors
# ====================================================================================

class StoreError(ZungenredeError):
    """Base exception for translation store failures"""
    pass


class CorruptStoreError(StoreError):
    """Raised when the durable file exists but cannot be understood.

    The process must not start with a partially understood store.
    """
    pass


class PersistenceError(StoreError):
    """Raised when a mutation could not be made durable.

    In-memory state is NOT updated; the file keeps its previous content.
    """
    pass


# ====================================================================================
# Request errors
# ====================================================================================

class AccessDenied(ZungenredeError):
    """Raised when a principal is not allowed to perform an operation"""

    def __init__(self, principal: Optional[int]):
        super().__init__(f"principal {principal} is not on the allowlist")
        self.principal = principal


class InvalidCommand(ZungenredeError):
    """Raised by the command parser for malformed input.

    usage_key names the i18n usage hint shown to the requester.
    """

    def __init__(self, usage_key: str, detail: str = ""):
        super().__init__(detail or usage_key)
        self.usage_key = usage_key
        self.detail = detail
