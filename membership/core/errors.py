"""Domain error taxonomy. Each error carries the HTTP status it maps to."""


class MembershipError(Exception):
    """Base class for errors raised by the membership services."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(MembershipError):
    """A required field is missing or malformed."""

    status_code = 400


class ConflictError(MembershipError):
    """Duplicate email, duplicate pending application, already registered, event full."""

    status_code = 400


class NotFoundError(MembershipError):
    """Unknown id or slug."""

    status_code = 404


class AuthError(MembershipError):
    """Missing, invalid or expired credential."""

    status_code = 401


class ForbiddenError(MembershipError):
    """Authenticated caller lacks the required role."""

    status_code = 403


class NotificationError(MembershipError):
    """
    Mail delivery failed.

    Never surfaced to API callers: the notification dispatcher logs it and moves on.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider_status = status_code
