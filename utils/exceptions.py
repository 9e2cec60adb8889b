"""
Custom exception classes for Lambda handlers and services.

Each exception carries the HTTP status code the API decorators map it to.
"""
from typing import Optional, Any


class ProjectHubError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        """
        Initialize error.

        Args:
            message: Error message returned to the caller
            status_code: Overrides the class default status code
        """
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ProjectHubError):
    """Exception raised when request input fails validation."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None
    ):
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation if available
            value: Invalid value if available
        """
        super().__init__(message)
        self.field = field
        self.value = value


class UnauthorizedError(ProjectHubError):
    """Raised when the request carries no usable identity claims."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(ProjectHubError):
    """Raised when the caller lacks the role an operation requires."""

    status_code = 403


class NotFoundError(ProjectHubError):
    """Raised when a requested entity does not exist."""

    status_code = 404

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.entity_id = entity_id


class ConflictError(ProjectHubError):
    """Raised when a write collides with existing state."""

    status_code = 409


class DataStoreError(ProjectHubError):
    """Exception raised for DynamoDB operation errors."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None
    ):
        """
        Initialize data store error.

        Args:
            message: Error message
            table: DynamoDB table name if available
            operation: Operation name if available
        """
        super().__init__(message)
        self.table = table
        self.operation = operation


class EmailDeliveryError(ProjectHubError):
    """Exception raised when SES rejects or fails a send."""

    def __init__(self, message: str, recipient: Optional[str] = None):
        super().__init__(message)
        self.recipient = recipient


class WebhookDeliveryError(ProjectHubError):
    """Exception raised for outbound webhook and Slack delivery errors."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        response_status: Optional[int] = None
    ):
        """
        Initialize webhook delivery error.

        Args:
            message: Error message
            url: Target URL if available
            response_status: HTTP status code returned by the target if any
        """
        super().__init__(message)
        self.url = url
        self.response_status = response_status
