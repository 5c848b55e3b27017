from fastapi import status


class PortalError(Exception):
    """Base class for failures scoped to a single user action."""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthFailure(PortalError):
    """No valid session, or the session's role does not match the route."""
    status_code = status.HTTP_303_SEE_OTHER


class ValidationFailure(PortalError):
    """Bad user input, recoverable by correcting the form."""
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamFailure(PortalError):
    """A storage or database step failed; earlier steps are not undone."""
    status_code = status.HTTP_502_BAD_GATEWAY


class NotFound(PortalError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidCredentials(Exception):
    pass
