from .user import User, UserRole, STAFF_ROLES
from .athlete import Athlete
from .document import (
    Document,
    DocumentCategory,
    DocumentShare,
    DocumentTag,
    DocumentType,
    DocumentVersion,
    PermissionLevel,
    ValidationStatus,
    document_tag_relations,
)

__all__ = [
    "User",
    "UserRole",
    "STAFF_ROLES",
    "Athlete",
    "Document",
    "DocumentCategory",
    "DocumentShare",
    "DocumentTag",
    "DocumentType",
    "DocumentVersion",
    "PermissionLevel",
    "ValidationStatus",
    "document_tag_relations",
]
