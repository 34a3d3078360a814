class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found or not visible to the caller."""
    def __init__(self, resource_type: str, resource_id: str, message: str | None = None):
        super().__init__(
            message or f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationFailedError(AppError):
    """Raised when a required field is missing or empty."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class AlreadyProcessedError(ResourceNotFoundError):
    """Raised when a schedule change request is no longer pending.

    Reported as 404 so that clients cannot tell a processed request from a
    missing one.
    """
    def __init__(self, request_id: str):
        super().__init__(
            "schedule_change_request",
            request_id,
            message="Schedule change request not found or already processed",
        )
        self.details["reason"] = "already_processed"


class StorageError(AppError):
    """Raised when a primary write fails in the persistence layer."""
    def __init__(self, message: str = "Server error", details: dict = None):
        super().__init__(message, status_code=500, details=details)
