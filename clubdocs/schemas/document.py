from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, computed_field, field_validator

from ..providers.base import StorageLocation


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TagResponse(BaseModel):
    id: int
    name: str
    color: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()


class TagCreate(BaseModel):
    name: str
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()


class StorageLocationResponse(BaseModel):
    kind: str
    value: str


class DocumentResponse(BaseModel):
    id: int
    athlete_id: int
    document_type: str
    category_id: Optional[int] = None
    category: Optional[CategoryResponse] = None
    file_name: str
    file_url: str
    file_size_bytes: int
    mime_type: Optional[str] = None
    validation_status: str
    expiry_date: Optional[date] = None
    uploaded_at: datetime
    validated_by: Optional[int] = None
    validated_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    tags: List[TagResponse] = []

    class Config:
        from_attributes = True

    @computed_field
    @property
    def location(self) -> StorageLocationResponse:
        resolved = StorageLocation.from_locator(self.file_url)
        return StorageLocationResponse(kind=resolved.kind.value, value=resolved.value)


class DocumentVersionResponse(BaseModel):
    id: int
    document_id: int
    version_number: int
    file_name: str
    file_url: str
    file_size_bytes: int
    mime_type: Optional[str] = None
    notes: Optional[str] = None
    uploaded_by: Optional[int] = None
    uploaded_at: datetime

    class Config:
        from_attributes = True


class DocumentShareResponse(BaseModel):
    id: int
    document_id: int
    shared_by: int
    shared_with: int
    permission_level: str
    notes: Optional[str] = None
    shared_at: datetime
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SharedDocumentResponse(DocumentShareResponse):
    document: DocumentResponse


class ShareRequest(BaseModel):
    shared_with: int
    permission_level: str
    notes: Optional[str] = None
    # YYYY-MM-DD
    expires_at: Optional[str] = None


class UnshareRequest(BaseModel):
    user_id: int


class RejectRequest(BaseModel):
    reason: str = ""


class BulkUploadResultResponse(BaseModel):
    athlete_id: int
    document: Optional[DocumentResponse] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str
