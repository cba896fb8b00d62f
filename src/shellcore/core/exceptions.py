"""
Custom exceptions for shellcore.

All shellcore exceptions inherit from ShellCoreError for easy catching.
Tolerated geometric edge cases (open loops, collapsed offsets, ambiguous
containment) are never raised; they are recorded on the results instead.
"""

from typing import Any


class ShellCoreError(Exception):
    """Base exception for all shellcore errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(ShellCoreError):
    """Raised when configuration is invalid or missing."""

    pass


class GeometryError(ShellCoreError):
    """Raised when input geometry cannot be loaded or sectioned."""

    pass


class SlicingError(ShellCoreError):
    """Raised when a slicing run cannot be carried out at all."""

    pass


class InvariantViolationError(ShellCoreError):
    """
    Raised when data reaching a stage breaks one of its invariants.

    This signals a programming bug rather than bad geometry. The pipeline
    aborts only the affected ring, never the whole run.
    """

    def __init__(
        self,
        message: str,
        layer_index: int | None = None,
        ring_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.layer_index = layer_index
        self.ring_id = ring_id
