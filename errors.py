"""
errors.py - Exception types shared across the dashboard
Every failure ends up as a user-facing message; the type tells the page
whether the problem was the server, the session or the form.
"""


class BranchDeskError(Exception):
    """Base class for dashboard errors"""


class ApiError(BranchDeskError):
    """A backend request failed or returned an error status"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(ApiError):
    """The backend rejected the session token (HTTP 401)"""


class ValidationError(BranchDeskError):
    """A form is missing required data; nothing was submitted"""


class UploadError(BranchDeskError):
    """One or more document uploads failed"""
