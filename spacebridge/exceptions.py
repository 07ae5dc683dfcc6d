"""Custom exception hierarchy for the Spacelift account migration tool."""

from __future__ import annotations


class SpacebridgeError(Exception):
    """Base exception for all migration-related errors."""


class ConfigurationError(SpacebridgeError):
    """Raised when credentials or configuration are missing or invalid."""


class APIError(SpacebridgeError):
    """Raised when a Spacelift API call or raw transfer fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DiscoveryError(SpacebridgeError):
    """Raised when any part of a discovery pass fails."""


class ResolutionError(SpacebridgeError):
    """Raised when a space filter token matches no space."""


class ManifestError(SpacebridgeError):
    """Raised when a manifest file cannot be read or parsed."""


class GenerationError(SpacebridgeError):
    """Raised when code generation cannot complete."""


class TransferError(SpacebridgeError):
    """Raised when one step of a single stack's state transfer fails."""

    def __init__(self, message: str, step: str, stack: str) -> None:
        super().__init__(message)
        self.step = step
        self.stack = stack


class AggregateFailure(SpacebridgeError):
    """Raised when at least one item of a batch operation failed.

    Succeeded items are left in effect.
    """

    def __init__(self, message: str, succeeded: int, failed: int) -> None:
        super().__init__(message)
        self.succeeded = succeeded
        self.failed = failed
