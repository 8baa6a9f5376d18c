"""Custom exception classes for the application.

Every error carries a stable machine-readable ``code`` and the HTTP status
it is rendered with by the handlers registered in ``app.main``.
"""


class ReviewAppException(Exception):
    """Base exception for all application errors."""

    code = "internal-server-error"
    status_code = 500

    def __init__(self, message: str = "Something went wrong"):
        self.message = message
        super().__init__(self.message)


class BadRequestError(ReviewAppException):
    """Raised on malformed or missing input."""

    code = "bad-request"
    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)


class UnauthenticatedError(ReviewAppException):
    """Raised when no valid bearer token accompanies the request."""

    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class UnauthorizedError(ReviewAppException):
    """Raised when the caller's role does not allow the operation."""

    code = "unauthorized"
    status_code = 403

    def __init__(self, message: str = "You are not allowed to perform this action"):
        super().__init__(message)


class NotFoundError(ReviewAppException):
    """Raised when a requested resource is not found."""

    code = "not-found"
    status_code = 404

    def __init__(self, resource: str = "Resource", identifier: str = ""):
        if identifier:
            super().__init__(f"{resource} with identifier '{identifier}' not found")
        else:
            super().__init__(f"{resource} not found")


class ReviewNotFoundError(NotFoundError):
    """Missing review, or one the caller may not see."""

    code = "review-not-found"

    def __init__(self, identifier: str = ""):
        super().__init__("Review", identifier)


class GameNotFoundError(NotFoundError):
    """Missing or soft-deleted game."""

    code = "game-not-found"

    def __init__(self, identifier: str = ""):
        super().__init__("Game", identifier)


class ConflictError(ReviewAppException):
    """Raised when a resource with the same identity already exists."""

    code = "conflict"
    status_code = 409

    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message)


class InvalidCodeError(BadRequestError):
    """Unknown token id, wrong code, or a code issued for another purpose."""

    code = "invalid-otp"

    def __init__(self, message: str = "Invalid verification code"):
        super().__init__(message)


class CodeUsedError(BadRequestError):
    code = "otp-used"

    def __init__(self, message: str = "Verification code has already been used"):
        super().__init__(message)


class CodeExpiredError(BadRequestError):
    code = "otp-expired"

    def __init__(self, message: str = "Verification code has expired"):
        super().__init__(message)


class AlreadyVerifiedError(ConflictError):
    code = "user-already-verified"

    def __init__(self, message: str = "Account is already verified"):
        super().__init__(message)


class UnknownError(ReviewAppException):
    """Opaque infrastructure failure; details stay in the logs."""


class StorageError(UnknownError):
    """Raised when a store write fails."""
