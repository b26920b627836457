"""
Domain exceptions for the ledger.

Services raise these instead of HTTPException; main.py renders them as
JSON responses with the status code each class carries.
"""


class AppError(Exception):
    """Base exception for all ledger errors."""
    status_code = 400

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = {k: v for k, v in extra.items() if v is not None}


class ValidationError(AppError):
    """Raised when input is malformed. Nothing has been written."""
    status_code = 400

    def __init__(self, message: str, field: str = None, **extra):
        super().__init__(message, field=field, **extra)
        self.field = field


class NotFoundError(AppError):
    """Raised when a referenced group, settlement, user or record does not exist."""
    status_code = 404


class AuthorizationError(AppError):
    """Raised when the caller lacks the membership or role an action requires."""
    status_code = 403


class ConflictError(AppError):
    """Raised on duplicate pending settlements and invalid state transitions."""
    status_code = 400

    def __init__(self, message: str, settlement_id: int = None, **extra):
        super().__init__(message, settlement_id=settlement_id, **extra)
        self.settlement_id = settlement_id


class ExternalDependencyError(AppError):
    """Raised when a collaborator the user controls is not set up, e.g. a missing UPI id."""
    status_code = 400


class SecondaryEffectError(AppError):
    """Raised inside best-effort side effects. Logged, never returned to the caller."""
    status_code = 500
