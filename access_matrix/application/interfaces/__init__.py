"""Application interfaces (ports) implemented by infrastructure."""

from access_matrix.application.interfaces.repositories import (
    IAccessGrantStore,
    IIdentityStore,
    IRoleCatalog,
    ITerritoryCatalog,
    MatrixRepositories,
    MatrixUnitOfWork,
)
from access_matrix.application.interfaces.services import (
    IAuditRecorder,
    IMatrixChangeListener,
)

__all__ = [
    "IAccessGrantStore",
    "IAuditRecorder",
    "IIdentityStore",
    "IMatrixChangeListener",
    "IRoleCatalog",
    "ITerritoryCatalog",
    "MatrixRepositories",
    "MatrixUnitOfWork",
]
