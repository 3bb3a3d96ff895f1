"""Custom exceptions for SpliceKit."""

from typing import Any


class SpliceKitError(Exception):
    """Base exception for all SpliceKit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}

    def with_context(self, **context: Any) -> "SpliceKitError":
        """Attach locating context without overwriting what is already known."""
        for key, value in context.items():
            self.details.setdefault(key, value)
        return self


class RenderError(SpliceKitError):
    """Raised when a template expression cannot be rendered."""


class MalformedDocumentError(SpliceKitError):
    """Raised when rendered output cannot be split into documents."""


class SchemaError(MalformedDocumentError):
    """Raised when a frontmatter block is malformed or incomplete."""


class InvalidPatternError(SpliceKitError):
    """Raised when an anchor or guard pattern is not a valid regex."""


class TargetMissingError(SpliceKitError):
    """Raised when an injection targets a file that does not exist."""


class FileIOError(SpliceKitError):
    """Raised when reading or writing a file fails."""


class ConfigError(SpliceKitError):
    """Raised when generator configuration cannot be loaded."""
