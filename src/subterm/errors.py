"""Exception hierarchy for subterm."""

from __future__ import annotations

from typing import Optional


class TranslatorError(Exception):
    """Base error for subterm."""


class ConfigError(TranslatorError):
    """Raised when a required setting (usually the API key) is missing."""


class MalformedInputError(TranslatorError):
    """Raised when subtitle input is empty or cannot be segmented."""


class SchemaError(TranslatorError):
    """Raised when a structured LLM response does not match the expected shape."""


class CountMismatchError(SchemaError):
    """Raised when a chunk response has a different number of lines than the request."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected} translated lines, got {actual}")
        self.expected = expected
        self.actual = actual


class LLMServiceError(TranslatorError):
    """Raised when the LLM service call itself fails."""

    def __init__(self, message: str, error_type: str = "unknown", retryable: bool = False) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable


class AnalysisError(TranslatorError):
    """Raised when term extraction fails."""


class ConsistencyError(TranslatorError):
    """Raised when the translated line count differs from the input line count."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Translated line count ({actual}) does not match source line count ({expected})"
        )
        self.expected = expected
        self.actual = actual


class ReassemblyError(TranslatorError):
    """Raised when a translated line cannot be found for a source line."""

    def __init__(self, unique_id: str, original_text: Optional[str] = None) -> None:
        detail = f" ({original_text})" if original_text is not None else ""
        super().__init__(f"No translation for subtitle line {unique_id}{detail}")
        self.unique_id = unique_id


class InvalidTransitionError(TranslatorError):
    """Raised when an event is not allowed in the current session phase."""
