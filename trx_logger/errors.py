"""Exceptions raised while collecting results and building reports."""


class TrxLoggerError(Exception):
    """Base class for report generation errors."""


class MetadataResolutionError(TrxLoggerError):
    """Raised when a test's declaring class or method cannot be located."""

    def __init__(self, qualified_name: str, source: str, reason: str) -> None:
        super().__init__(
            f"Cannot resolve metadata for '{qualified_name}' in '{source}': {reason}"
        )
        self.qualified_name = qualified_name
        self.source = source
        self.reason = reason


class MetadataProviderNotFoundError(TrxLoggerError):
    """Raised when a metadata provider is not found."""


class RunAlreadyCompletedError(TrxLoggerError):
    """Raised when events arrive after the run completion was handled."""


class InvalidMetadataProviderError(TrxLoggerError):
    """Raised when a registered metadata provider is not a manifest."""
