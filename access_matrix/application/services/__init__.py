"""Application services: the access matrix engine, its provisioning policy and user management."""

from access_matrix.application.services.access_matrix_engine import AccessMatrixEngine
from access_matrix.application.services.provisioning_policy import PermissionExpander
from access_matrix.application.services.user_service import UserService

__all__ = ["AccessMatrixEngine", "PermissionExpander", "UserService"]
