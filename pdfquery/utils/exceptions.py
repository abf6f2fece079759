"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout pdfquery.
Most of the core never raises: unmatched selectors, malformed tables and
unparseable values degrade to "no data". The exceptions below cover the
boundaries (configuration, source files, network fetches, output).

Exception Hierarchy:
    PdfQueryError (base)
    ├── ConfigurationError
    ├── SourceError
    │   ├── InvalidSourceError
    │   └── FetchError
    ├── AdapterError
    │   └── UnsupportedVendorError
    ├── QueryError
    │   └── InvalidQueryConfigError
    ├── TransformError
    └── OutputError
        ├── UnsupportedOutputFormatError
        └── OutputWriteError
"""


class PdfQueryError(Exception):
    """
    Base exception for all pdfquery errors.

    All custom exceptions in this package inherit from this class,
    allowing for easy catching of all package-specific errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PdfQueryError):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(self, key: str, reason: str = None):
        message = f"Invalid configuration: {key}"
        details = {"key": key, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# SOURCE ERRORS
# =============================================================================

class SourceError(PdfQueryError):
    """Base exception for source loading errors."""
    pass


class InvalidSourceError(SourceError):
    """
    Raised when a source payload does not have the expected shape.

    Example:
        >>> raise InvalidSourceError("entities file", "missing entities array")
    """

    def __init__(self, source: str, reason: str = None):
        message = f"Invalid {source}: {reason}" if reason else f"Invalid {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


class FetchError(SourceError):
    """Raised when a remote fetch returns a non-success HTTP status."""

    def __init__(self, url: str, status_code: int = None, reason: str = None):
        message = f"Failed to fetch {url}: {status_code}"
        details = {"url": url, "status_code": status_code, "reason": reason}
        self.status_code = status_code
        super().__init__(message, details)


# =============================================================================
# ADAPTER ERRORS
# =============================================================================

class AdapterError(PdfQueryError):
    """Base exception for vendor adapter errors."""
    pass


class UnsupportedVendorError(AdapterError):
    """
    Raised when an unknown vendor format is requested.

    Example:
        >>> raise UnsupportedVendorError("abbyy", ["textract", "docai"])
    """

    def __init__(self, vendor: str, supported: list):
        message = f"Unsupported vendor format: '{vendor}'"
        details = {"vendor": vendor, "supported": supported}
        super().__init__(message, details)


# =============================================================================
# QUERY ERRORS
# =============================================================================

class QueryError(PdfQueryError):
    """Base exception for query configuration errors."""
    pass


class InvalidQueryConfigError(QueryError):
    """Raised when a query configuration field has an unusable value."""

    def __init__(self, field: str, value, reason: str = None):
        message = f"Invalid query option '{field}'"
        details = {"field": field, "value": value, "reason": reason}
        super().__init__(message, details)


class TransformError(PdfQueryError):
    """Raised by the VLM transform client when the endpoint call fails."""

    def __init__(self, endpoint: str, reason: str = None):
        message = f"Transform request failed: {endpoint}"
        details = {"endpoint": endpoint, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(PdfQueryError):
    """Base exception for output handling errors."""
    pass


class UnsupportedOutputFormatError(OutputError):
    """Raised when an output format is not supported."""

    def __init__(self, fmt: str, supported: list):
        message = f"Unsupported output format: '{fmt}'"
        details = {"format": fmt, "supported": supported}
        super().__init__(message, details)


class OutputWriteError(OutputError):
    """Raised when an output file cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to write output file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# Export all exceptions
__all__ = [
    'PdfQueryError',
    'ConfigurationError',
    'SourceError',
    'InvalidSourceError',
    'FetchError',
    'AdapterError',
    'UnsupportedVendorError',
    'QueryError',
    'InvalidQueryConfigError',
    'TransformError',
    'OutputError',
    'UnsupportedOutputFormatError',
    'OutputWriteError',
]
