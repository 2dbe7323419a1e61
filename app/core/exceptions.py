from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code = "SERVICE_ERROR"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailedError(ServiceError):
    """A business rule rejected the request. Nothing was written."""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY) -> None:
        super().__init__(message, status_code)


class NoActiveCycleError(ValidationFailedError):
    code = "NO_ACTIVE_CYCLE"

    def __init__(
        self,
        message: str = "No active assignment cycle available. Please create and activate a cycle first.",
    ) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class PermissionDeniedError(ServiceError):
    code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(ServiceError):
    code = "NOT_FOUND"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class InvalidStatusTransitionError(ServiceError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
