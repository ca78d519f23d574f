from .auth import AuthService
from .directory import DirectoryService
from .documents import (
    DocumentError,
    DocumentNotFoundError,
    DocumentRepository,
    InvalidDocumentInputError,
)

__all__ = [
    "AuthService",
    "DirectoryService",
    "DocumentError",
    "DocumentNotFoundError",
    "DocumentRepository",
    "InvalidDocumentInputError",
]
