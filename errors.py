"""
Error taxonomy for the storefront API.

Every error rendered to a client has the body {"error": <message>}.
"""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(StorefrontError):
    """No session, or the session token is invalid."""
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(StorefrontError):
    """Entity is absent or belongs to another user."""
    status_code = 404


class ValidationFailed(StorefrontError):
    status_code = 400


class Conflict(StorefrontError):
    # duplicate email etc.; reported as a plain 400
    status_code = 400
