from typing import Any, Dict, Optional

from src.core.exceptions.handler import ServiceError, ServiceErrorCode


class UnauthenticatedError(ServiceError):
    def __init__(self, message: str = "Please sign in"):
        super().__init__(
            code=ServiceErrorCode.UNAUTHENTICATED,
            message=message,
            status_code=401,
            headers={"WWW-Authenticate": "Bearer"},
        )


class EmailNotFoundError(ServiceError):
    def __init__(self, message: str = "No email address is registered for this account"):
        super().__init__(
            code=ServiceErrorCode.EMAIL_NOT_FOUND,
            message=message,
            status_code=400,
        )


class ResendCooldownError(ServiceError):
    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(
            code=ServiceErrorCode.RATE_LIMIT_EXCEEDED,
            message=f"Wait {retry_after} seconds before requesting another code",
            status_code=429,
            details={"retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )


class CodeNotFoundError(ServiceError):
    def __init__(self, message: str = "Request a verification code first"):
        super().__init__(
            code=ServiceErrorCode.CODE_NOT_FOUND,
            message=message,
            status_code=400,
        )


class CodeExpiredError(ServiceError):
    def __init__(self, message: str = "Code expired. Request a new code"):
        super().__init__(
            code=ServiceErrorCode.CODE_EXPIRED,
            message=message,
            status_code=400,
        )


class AttemptsExhaustedError(ServiceError):
    def __init__(self, message: str = "Too many attempts. Request a new code"):
        super().__init__(
            code=ServiceErrorCode.ATTEMPTS_EXHAUSTED,
            message=message,
            status_code=400,
        )


class WrongCodeError(ServiceError):
    def __init__(self, attempts_remaining: int):
        self.attempts_remaining = attempts_remaining
        super().__init__(
            code=ServiceErrorCode.WRONG_CODE,
            message=f"Wrong code. {attempts_remaining} attempts remaining",
            status_code=400,
            details={"attempts_remaining": attempts_remaining},
        )


class DependencyFailureError(ServiceError):
    def __init__(self, message: str = "Could not send the email. Please try again", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ServiceErrorCode.DEPENDENCY_FAILURE,
            message=message,
            status_code=502,
            details=details,
        )


class ServiceUnavailableError(ServiceError):
    def __init__(self, message: str = "Service unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ServiceErrorCode.SERVICE_UNAVAILABLE,
            message=message,
            status_code=503,
            details=details,
        )
