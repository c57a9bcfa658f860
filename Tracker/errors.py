"""
Tracker Error Handling.

Exception hierarchy for the insights engine. Parsing and aggregation never
raise; these errors are reserved for configuration problems and failures of
the persistence collaborator.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """
    Base exception for all Tracker errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about the error
    """

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error string."""
        if self.context:
            return f"{self.message} Context: {self.context}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """
        Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary with error details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(TrackerError):
    """Invalid or missing configuration value."""

    def __init__(self, message: str, variable: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or {}
        if variable:
            context["variable"] = variable
        super().__init__(message, context=context)
        self.variable = variable


class DataSourceError(TrackerError):
    """
    Failure while reading values from the persistence collaborator.

    Raised by adapters; the aggregator catches it at the pass boundary and
    degrades the affected event to "no data".
    """

    def __init__(
        self,
        message: str,
        event_id: Optional[int] = None,
        retryable: bool = True,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or {}
        if event_id is not None:
            context["event_id"] = event_id
        super().__init__(message, context=context)
        self.event_id = event_id
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["retryable"] = self.retryable
        return result


class EventNotFoundError(DataSourceError):
    """Requested event does not exist in the store."""

    def __init__(self, event_id: int):
        super().__init__(f"Event not found: {event_id}", event_id=event_id, retryable=False)


class ImportValidationError(TrackerError):
    """Backup file does not match the expected export format."""


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error can be retried.

    Args:
        error: Exception to check

    Returns:
        True if error is retryable
    """
    if isinstance(error, DataSourceError):
        return error.retryable
    return isinstance(error, (TimeoutError, ConnectionError, OSError))
