"""
Error taxonomy for the portal API.

Raise these from dependencies and route handlers; the handlers registered in
main.py turn them into the `{success: false, error, details?}` envelope.
"""

from typing import Any, Dict, List, Optional


class PortalError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message}


class ValidationFailed(PortalError):
    status_code = 400

    def __init__(self, details: List[Dict[str, str]], message: str = "Validation failed"):
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["details"] = self.details
        return body


class AuthenticationError(PortalError):
    status_code = 401


class NotFoundError(PortalError):
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")


class ConfigurationError(PortalError):
    status_code = 500

    def __init__(self, message: str = "Server configuration error."):
        super().__init__(message)
