"""Exception hierarchy for the external events ingestion pipeline.

Every error carries a human-readable message, structured context and a
correction hint, so that callers can log it with ``to_dict()`` and decide
whether to absorb it.
"""

from typing import Any


class IngestError(Exception):
    """Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message.
        error_data: Structured error information for logging.
        suggestion: Hint for how to resolve the error.
    """

    def __init__(
        self,
        message: str,
        error_data: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize the ingestion error.

        Args:
            message: Human-readable error message.
            error_data: Structured context (URLs, paths, fields, etc.).
            suggestion: Actionable correction hint.
        """
        super().__init__(message)
        self.message = message
        self.error_data = error_data or {}
        self.suggestion = suggestion

    def __str__(self) -> str:
        """Return formatted error message with suggestion if available."""
        base = self.message
        if self.suggestion:
            return f"{base}\nSuggestion: {self.suggestion}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to structured dictionary for logging.

        Returns:
            Dictionary with error type, message, data, and suggestion.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_data": self.error_data,
            "suggestion": self.suggestion,
        }


class TransportError(IngestError):
    """Network or HTTP failure while fetching a page or the API.

    Examples:
        - Connection timeout
        - HTTP 404/500 responses
        - DNS resolution failures
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        error_data: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize transport error.

        Args:
            message: Human-readable error message.
            url: The URL that failed.
            status_code: HTTP status code if a response was received.
            error_data: Additional context.
            suggestion: How to resolve the error.
        """
        data = error_data or {}
        data.update({"url": url, "status_code": status_code})

        default_suggestion = suggestion or (
            "The remote site answered with an error status. "
            "Check that the URL still exists."
            if status_code is not None
            else "Check network connectivity. The remote site may be unreachable."
        )

        super().__init__(message, data, default_suggestion)
        self.url = url
        self.status_code = status_code


class ParseError(IngestError):
    """HTML or JSON content does not have the expected shape.

    Examples:
        - API response body is not valid JSON
        - API ``events`` field is not a list
        - Listing block without a recognisable title
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        field: str | None = None,
        snippet: str | None = None,
        error_data: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize parse error.

        Args:
            message: Human-readable error message.
            source: Name of the source being parsed.
            field: Field name that failed to parse.
            snippet: Relevant raw content (truncated).
            error_data: Additional context.
            suggestion: How to resolve the error.
        """
        data = error_data or {}
        data.update(
            {
                "source": source,
                "field": field,
                "snippet": snippet[:500] if snippet else None,
            }
        )

        default_suggestion = suggestion or (
            f"The format of field '{field}' may have changed upstream. "
            f"Review the parser for source '{source}'."
            if field
            else "The upstream format may have changed. Review the parser."
        )

        super().__init__(message, data, default_suggestion)
        self.source = source
        self.field = field


class CacheCorruption(IngestError):
    """The cache file exists but cannot be read or has an invalid shape."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        error_data: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize cache corruption error.

        Args:
            message: Human-readable error message.
            path: Path of the cache file.
            error_data: Additional context.
            suggestion: How to resolve the error.
        """
        data = error_data or {}
        data.update({"path": path})

        default_suggestion = suggestion or (
            "The cache is treated as empty and will be rebuilt on the next "
            "refresh. Delete the file if the problem persists."
        )

        super().__init__(message, data, default_suggestion)
        self.path = path


class StaleDataFallback(IngestError):
    """A refresh failed and the previously cached snapshot is served instead."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        served: int = 0,
        cause: BaseException | None = None,
        error_data: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize stale data fallback.

        Args:
            message: Human-readable error message.
            path: Path of the cache file being served.
            served: Number of cached events served.
            cause: The exception that aborted the refresh.
            error_data: Additional context.
            suggestion: How to resolve the error.
        """
        data = error_data or {}
        data.update(
            {
                "path": path,
                "served": served,
                "cause": repr(cause) if cause else None,
            }
        )

        default_suggestion = suggestion or (
            "The next request will retry the refresh. "
            "Check upstream availability if this repeats."
        )

        super().__init__(message, data, default_suggestion)
        self.path = path
        self.served = served
        self.cause = cause


class ConfigurationError(IngestError):
    """Invalid configuration values or CLI arguments."""

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        expected_format: str | None = None,
        example: str | None = None,
        error_data: dict[str, Any] | None = None,
        suggestion: str | None = None,
    ):
        """Initialize configuration error.

        Args:
            message: Human-readable error message.
            parameter: Parameter name that's invalid.
            expected_format: Expected format for the parameter.
            example: Example of valid value.
            error_data: Additional context.
            suggestion: How to resolve the error.
        """
        data = error_data or {}
        data.update(
            {
                "parameter": parameter,
                "expected_format": expected_format,
                "example": example,
            }
        )

        default_suggestion = suggestion or (
            f"Parameter '{parameter}' must be in format: {expected_format}. "
            f"Example: {example}"
            if parameter and expected_format and example
            else "Check the environment variables and command-line arguments."
        )

        super().__init__(message, data, default_suggestion)
        self.parameter = parameter
        self.expected_format = expected_format
        self.example = example
