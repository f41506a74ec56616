"""
Exception hierarchy for voxref.

Extraction failures are recoverable and stay inside the index store;
initialization failures propagate to the caller.
"""


class VoxrefError(Exception):
    """Base exception for voxref errors."""

    pass


class ConfigurationError(VoxrefError):
    """Raised when there's a configuration problem."""

    pass


class ExtractionError(VoxrefError):
    """Raised when symbols cannot be extracted from a file."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InitializationError(VoxrefError):
    """Raised when the index cannot be built."""

    pass


class NotInitializedError(VoxrefError):
    """Raised when matching is requested before the index is ready."""

    pass
