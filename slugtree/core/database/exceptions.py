"""Sluggable exceptions.

Custom exceptions for slug configuration and generation that provide better
error messages than raw SQLAlchemy or pydantic exceptions.
"""
from __future__ import annotations

from typing import Any


class SluggableError(Exception):
    """Base exception for sluggable operations.

    Raised when slug configuration or generation fails due to programming
    errors, configuration issues, or unexpected states.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize sluggable error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class InvalidMappingError(SluggableError):
    """Sluggable declaration does not match the model mapping.

    Raised at registration time, before any data is processed, when a
    declared field is missing or has the wrong kind (for example a tree
    parent relation that is a collection).

    Attributes:
        model_name: Name of the offending model class
        field: The declared field name (if applicable)
    """

    def __init__(self, model_name: str, reason: str, field: str | None = None):
        """Initialize invalid mapping error.

        Args:
            model_name: Name of the model (e.g., "Category")
            reason: What is wrong with the declaration
            field: Name of the offending field
        """
        self.model_name = model_name
        self.field = field

        details: dict[str, Any] = {"model": model_name}
        if field is not None:
            details["field"] = field
        super().__init__(reason, details=details)

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"InvalidMappingError(model={self.model_name!r}, field={self.field!r})"


class UnknownHandlerError(SluggableError):
    """A declared slug handler is not a SlugHandler subclass."""

    def __init__(self, model_name: str, handler: Any):
        """Initialize unknown handler error.

        Args:
            model_name: Name of the model declaring the handler
            handler: The object given as handler class
        """
        self.model_name = model_name
        self.handler = handler
        super().__init__(
            f"{handler!r} is not a slug handler class",
            details={"model": model_name},
        )


__all__ = [
    "InvalidMappingError",
    "SluggableError",
    "UnknownHandlerError",
]
