"""
Common exceptions for contextkit.
"""


class ContextKitError(Exception):
    """Base exception for all contextkit errors."""
    pass


class ConfigurationError(ContextKitError):
    """Raised when there are configuration issues."""
    pass


class ValidationError(ContextKitError):
    """Raised when input validation fails."""
    pass


class StorageError(ContextKitError):
    """Raised when knowledge persistence operations fail."""
    pass


class ProviderError(ContextKitError):
    """Raised when an embedding or search backend fails."""
    pass


class SearchError(ContextKitError):
    """Raised when search operations fail."""
    pass
