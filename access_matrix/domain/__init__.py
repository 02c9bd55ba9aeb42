"""Domain layer: enums and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from access_matrix.domain.enums import GrantState, ProvisioningPolicy
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

__all__ = [
    # Enums
    "GrantState",
    "ProvisioningPolicy",
    # Exceptions
    "AccessMatrixException",
    "AuditWriteException",
    "ConflictException",
    "DuplicateAssignmentException",
    "ResourceNotFoundException",
    "StorageException",
    "UserAlreadyExistsException",
    "ValidationException",
]
