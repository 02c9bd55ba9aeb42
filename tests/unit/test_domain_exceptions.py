"""Tests for domain exceptions (error_code, message, details)."""

from access_matrix.domain.exceptions import (
    AccessMatrixException,
    AuditWriteException,
    ConflictException,
    DuplicateAssignmentException,
    ResourceNotFoundException,
    StorageException,
    UserAlreadyExistsException,
    ValidationException,
)


def test_base_exception_default_error_code() -> None:
    """Base AccessMatrixException uses class name as error_code when not provided."""
    exc = AccessMatrixException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "AccessMatrixException"
    assert exc.details == {}
    assert str(exc) == "Something failed"


def test_base_exception_custom_error_code_and_details() -> None:
    exc = AccessMatrixException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("At least one territory is required", field="municipality_ids")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "municipality_ids"}


def test_validation_exception_without_field() -> None:
    exc = ValidationException("Invalid")
    assert exc.details == {}


def test_resource_not_found_exception() -> None:
    exc = ResourceNotFoundException("municipality", [7, 9])
    assert exc.message == "municipality not found: [7, 9]"
    assert exc.error_code == "RESOURCE_NOT_FOUND"
    assert exc.details == {"resource_type": "municipality", "resource_id": [7, 9]}


def test_conflict_hierarchy() -> None:
    """User and assignment duplicates are conflicts with their own codes."""
    assert ConflictException("dup").error_code == "CONFLICT"

    user_exc = UserAlreadyExistsException()
    assert isinstance(user_exc, ConflictException)
    assert user_exc.error_code == "USER_ALREADY_EXISTS"

    assignment = DuplicateAssignmentException(
        "Role already assigned", "user_role", {"role_id": 3}
    )
    assert isinstance(assignment, ConflictException)
    assert assignment.error_code == "DUPLICATE_ASSIGNMENT"
    assert assignment.details == {"role_id": 3, "assignment_type": "user_role"}


def test_storage_exception() -> None:
    exc = StorageException("Storage operation failed", reason="connection reset")
    assert exc.error_code == "STORAGE_ERROR"
    assert exc.details == {"reason": "connection reset"}
    assert StorageException("x").details == {}


def test_audit_write_exception() -> None:
    exc = AuditWriteException("PROVISION", "disk full")
    assert exc.message == "Failed to persist audit entry for PROVISION"
    assert exc.error_code == "AUDIT_WRITE_ERROR"
    assert exc.details == {"action": "PROVISION", "reason": "disk full"}
