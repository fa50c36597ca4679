"""
Custom exceptions for the application.
"""


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Validation error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "VALIDATION_ERROR")


class CallNotFoundError(AppError):
    """No live session is tracked for the call."""

    def __init__(self, call_id: str) -> None:
        super().__init__(f"Call not found: {call_id}", "CALL_NOT_FOUND")
        self.call_id = call_id
