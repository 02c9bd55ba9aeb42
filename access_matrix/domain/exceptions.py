"""Domain exceptions for the access matrix.

Defines domain-level exceptions that represent business rule violations
and storage failures. Callers (user-management service, route layer) map
them to their own responses using message, error_code and details.
"""

from typing import Any


class AccessMatrixException(Exception):
    """Base exception for all access-matrix errors.

    All custom exceptions inherit from this class to allow consistent
    error handling and logging.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AccessMatrixException):
    """Raised when caller input violates a precondition (e.g. no territory on creation)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(AccessMatrixException):
    """Raised when a referenced user/role/municipality/permission does not exist."""

    def __init__(self, resource_type: str, resource_id: Any) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'user', 'municipality').
            resource_id: The ID (or IDs) that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictException(AccessMatrixException):
    """Raised when a unique value already exists (e.g. role name)."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class UserAlreadyExistsException(ConflictException):
    """Raised when creating a user whose username or email already exists."""

    def __init__(self) -> None:
        super().__init__("Username or email already registered", "USER_ALREADY_EXISTS")


class DuplicateAssignmentException(ConflictException):
    """Raised when assigning a role/permission that is already assigned (unique constraint)."""

    def __init__(
        self,
        message: str,
        assignment_type: str,
        details_extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with message and assignment context.

        Args:
            message: Human-readable description (e.g. 'Permission already assigned to role').
            assignment_type: 'role_permission' or 'user_role'.
            details_extra: Optional extra keys (e.g. role_id, permission_id).
        """
        details = details_extra or {}
        details["assignment_type"] = assignment_type
        super().__init__(message, "DUPLICATE_ASSIGNMENT", details)


class StorageException(AccessMatrixException):
    """Raised when a transaction fails or the database is unreachable. Always rolled back."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        details = {"reason": reason} if reason else {}
        super().__init__(message, "STORAGE_ERROR", details)


class AuditWriteException(AccessMatrixException):
    """Audit trail write failure. Logged by the audit writer, never propagated."""

    def __init__(self, action: str, reason: str) -> None:
        super().__init__(
            f"Failed to persist audit entry for {action}",
            "AUDIT_WRITE_ERROR",
            {"action": action, "reason": reason},
        )
