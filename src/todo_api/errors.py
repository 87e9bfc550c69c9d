"""
Application error hierarchy.

Every ApiError carries the HTTP status it maps to; the handler registered in
main renders it as ``{"error": message}``. StoreError is internal to the
persistence layer and is always translated before reaching a client.
"""
from typing import Any, Dict, List, Optional


class ApiError(Exception):
    """Base class for errors that are rendered as JSON responses."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to error response body."""
        return {"error": self.message}


class AuthenticationRequired(ApiError):
    """No valid session could be resolved for the request."""

    status_code = 401
    default_message = "Authentication required"


class NotFound(ApiError):
    """The record does not exist or is not owned by the caller."""

    status_code = 404
    default_message = "Todo not found"


class InternalFailure(ApiError):
    """Unexpected failure on a read or create path."""

    status_code = 500


class ValidationFailed(ApiError):
    """
    Malformed input.

    Rendered with its own shape so clients can tell schema failures apart
    from business errors::

        {"success": false, "error": {"name": "ValidationError", "issues": [...]}}
    """

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, issues: List[Dict[str, Any]], message: Optional[str] = None):
        super().__init__(message)
        self.issues = issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": {
                "name": "ValidationError",
                "message": self.message,
                "issues": self.issues,
            },
        }


class StoreError(Exception):
    """Raised by repositories when the underlying database call fails."""
