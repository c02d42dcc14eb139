"""
Error taxonomy for the search core.

Only InvalidInput ever leaves the package (bad ranking weights handed in
by a caller). The other errors are raised at collaborator boundaries and
caught by the component that owns the boundary.
"""


class SearchCoreError(Exception):
    """Base class for all search core errors."""


class InvalidInput(SearchCoreError, ValueError):
    """Raised for malformed configuration such as unknown weight names."""


class CollaboratorUnavailable(SearchCoreError):
    """Raised when an injected collaborator (history lookup) fails."""
    def __init__(self, name: str, reason: str = ""):
        self.name = name
        self.reason = reason
        message = f"Collaborator '{name}' unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CacheCorrupted(SearchCoreError):
    """Raised when a persisted cache payload cannot be decoded."""


class StorageUnavailable(SearchCoreError):
    """Raised when the key-value storage backend cannot be reached."""
