"""Domain errors raised by services; app.main turns them into JSON error bodies."""


class AppError(Exception):
    """Base error with the HTTP status the API answers with."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Business rule rejection: already registered, duplicate code, ..."""

    status_code = 400


class VoucherRejected(AppError):
    status_code = 400


class PaymentInitiationError(AppError):
    status_code = 502


class PaymentVerificationError(AppError):
    status_code = 400
