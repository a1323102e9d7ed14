"""
Error Types

Typed failures surfaced by the rebuild and query operations. Each error
carries the underlying exception (if any) as ``cause`` so callers can report
it without unwrapping ``__cause__``.

    AnalyticsError
    ├── Unauthorized       missing or wrong rebuild credential
    ├── InvalidArgument    malformed request input, rejected before store access
    ├── RebuildFailed      store error during a rebuild (watermark untouched)
    └── QueryFailed        store error while building a report
"""

from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base class for analytics service errors."""

    status_code: int = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for transport layers."""
        payload: Dict[str, Any] = {"error": self.message}
        if self.cause is not None:
            payload["detail"] = str(self.cause)
        return payload


class Unauthorized(AnalyticsError):
    status_code = 401


class InvalidArgument(AnalyticsError):
    status_code = 400


class RebuildFailed(AnalyticsError):
    status_code = 500


class QueryFailed(AnalyticsError):
    status_code = 500
