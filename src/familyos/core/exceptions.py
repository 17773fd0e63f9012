"""
Exception hierarchy for the FamilyOS core.

Provides structured error handling with specific error types for the
policy, persistence, crypto and upstream failure modes.
"""

from typing import Any, Dict, Optional


class FamilyOSError(Exception):
    """Base exception for all FamilyOS errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        component: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.component = component

    def __str__(self) -> str:
        """String representation of the error."""
        base_msg = f"[{self.component or 'FamilyOS'}] {self.message}"
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "component": self.component,
            "details": self.details,
        }


class ConfigurationError(FamilyOSError):
    """Exception raised when configuration is invalid or missing."""

    pass


class InvalidInputError(FamilyOSError):
    """Exception raised for malformed caller input (bad URL, empty PIN)."""

    def __init__(self, field: str, value: Any, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Invalid input for '{field}': {reason}",
            error_code="INVALID_INPUT",
            details={
                "field": field,
                "value": str(value),
                "reason": reason,
            },
            **kwargs,
        )


class TransientUpstreamError(FamilyOSError):
    """Exception raised when the remote content filter is unreachable or misbehaves."""

    def __init__(self, endpoint: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Upstream call to {endpoint} failed: {reason}",
            error_code="UPSTREAM_UNAVAILABLE",
            details={"endpoint": endpoint, "reason": reason},
            **kwargs,
        )


class PersistenceError(FamilyOSError):
    """Exception raised when durable storage cannot be read or written."""

    def __init__(self, target: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"Persistence failure for {target}: {reason}",
            error_code="PERSISTENCE_FAILURE",
            details={"target": target, "reason": reason},
            **kwargs,
        )


class CryptoError(FamilyOSError):
    """Exception raised when encryption or decryption fails."""

    def __init__(self, operation: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            f"{operation} failed: {reason}",
            error_code="CRYPTO_FAILURE",
            details={"operation": operation, "reason": reason},
            **kwargs,
        )
