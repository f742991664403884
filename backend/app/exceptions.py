"""Domain exceptions raised by services and mapped to HTTP errors in app.main."""


class DomainError(Exception):
    """Base exception for the service layer"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(DomainError):
    """Input failed a business rule (bad sign, bad date, unknown granularity...)"""

    status_code = 400


class AuthenticationError(DomainError):
    """Caller identity is missing or credentials are wrong"""

    status_code = 401


class PermissionDeniedError(DomainError):
    """Caller is not allowed to act on another user's data"""

    status_code = 403


class NotFoundError(DomainError):
    """Record does not exist or is not visible to the caller"""

    status_code = 404
