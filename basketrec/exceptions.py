"""Custom exceptions for BasketRec.

"No signal" situations (unknown product, empty history, empty cart) are never
raised: strategies degrade to a fallback instead. The exceptions below cover
real failures of the data layer or of the tracker.
"""

from typing import Any, Dict, Optional


class BasketRecException(Exception):
    """Base exception for BasketRec errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class StoreNotFoundError(BasketRecException):
    """Raised when the data directory or snapshot cannot be found."""

    def __init__(self, path: str, details: Optional[Dict[str, Any]] = None):
        message = f"Store data not found at '{path}'. Generate or export data first."
        super().__init__(
            message=message,
            status_code=503,
            details=details or {"path": path},
        )


class StoreLoadError(BasketRecException):
    """Raised when store data exists but cannot be parsed."""

    def __init__(self, path: str, error: Exception):
        message = f"Failed to load store data from '{path}': {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "path": path,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class DataAccessError(BasketRecException):
    """Raised by external data access adapters when a query or write fails.

    ``FrameStore`` does no I/O after loading and never raises it. Adapters
    backed by a database wrap their driver errors in it; the strategies and
    the tracker let it propagate unchanged and the API answers 503.
    """

    def __init__(self, operation: str, error: Exception):
        message = f"Data access failed during '{operation}': {str(error)}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "operation": operation,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class RecommendationError(BasketRecException):
    """Raised when a recommendation strategy fails."""

    def __init__(self, strategy: str, error: Exception):
        message = f"Failed to generate {strategy} recommendations: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "strategy": strategy,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class TrackingError(BasketRecException):
    """Raised when a recommendation event cannot be recorded."""

    def __init__(self, event_type: str, error: Exception):
        message = f"Failed to track '{event_type}' event: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "event_type": event_type,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
