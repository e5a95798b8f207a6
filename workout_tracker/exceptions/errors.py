from fastapi import status
from fastapi.responses import JSONResponse

class ApplicationException(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self):
        return JSONResponse(
            status_code=self.status_code,
            content={"error": self.message}
        )


class ValidationError(ApplicationException):
    """Rejected input: empty routine, malformed backup, bad field values."""
    status_code = status.HTTP_400_BAD_REQUEST


class UsernameTakenError(ValidationError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Username already taken."):
        super().__init__(message)


class AuthError(ApplicationException):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentialsError(AuthError):
    # Same message for unknown user and wrong password
    def __init__(self, message: str = "Invalid username or password."):
        super().__init__(message)


class SyncError(ApplicationException):
    """Remote document store unreachable or rejected a write."""
    status_code = status.HTTP_502_BAD_GATEWAY


class ExternalServiceError(ApplicationException):
    """Fitness sink or plan generator failure."""
    status_code = status.HTTP_502_BAD_GATEWAY


class NotFoundError(ApplicationException):
    status_code = status.HTTP_404_NOT_FOUND


class ModeError(ApplicationException):
    """The operation needs a mode (local profile, cloud account) that is not active."""
    status_code = status.HTTP_409_CONFLICT
