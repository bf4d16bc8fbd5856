"""Error taxonomy shared by every review service.

Each error carries a stable ``kind`` and the status code a transport binding
should answer with. Services raise these; ``studio.main`` turns them into
JSON responses.
"""
from fastapi import status


class StudioError(Exception):
    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class NotFound(StudioError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Forbidden(StudioError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class Expired(StudioError):
    kind = "expired"
    status_code = status.HTTP_410_GONE
    default_message = "Review link has expired"


class Exhausted(StudioError):
    kind = "exhausted"
    status_code = status.HTTP_410_GONE
    default_message = "Review link has already been used"


class PasswordRequired(StudioError):
    kind = "password_required"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "This review link is password protected"

    def to_dict(self) -> dict:
        return {**super().to_dict(), "requires_password": True}


class PasswordInvalid(PasswordRequired):
    kind = "password_invalid"
    default_message = "Invalid password for this review link"


class InvalidInput(StudioError):
    kind = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Conflict(StudioError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Concurrent update conflict, please retry"
