from .document import (
    BulkUploadResultResponse,
    CategoryCreate,
    CategoryResponse,
    DocumentResponse,
    DocumentShareResponse,
    DocumentVersionResponse,
    MessageResponse,
    RejectRequest,
    SharedDocumentResponse,
    ShareRequest,
    StorageLocationResponse,
    TagCreate,
    TagResponse,
    UnshareRequest,
)

__all__ = [
    "BulkUploadResultResponse",
    "CategoryCreate",
    "CategoryResponse",
    "DocumentResponse",
    "DocumentShareResponse",
    "DocumentVersionResponse",
    "MessageResponse",
    "RejectRequest",
    "SharedDocumentResponse",
    "ShareRequest",
    "StorageLocationResponse",
    "TagCreate",
    "TagResponse",
    "UnshareRequest",
]
