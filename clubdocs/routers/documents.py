import logging
import os
from datetime import datetime, time
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from starlette.datastructures import UploadFile as StarletteUploadFile

from ..config import Settings, get_settings
from ..database import get_db, get_session_factory
from ..models.athlete import Athlete
from ..models.document import Document
from ..models.user import User
from ..providers import StorageLocation, StorageProviderBase, get_storage_provider
from ..schemas.document import (
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
    TagCreate,
    TagResponse,
    UnshareRequest,
)
from ..services.auth import AuthService
from ..services.bulk_upload import BulkUploadItem, BulkUploadOrchestrator
from ..services.directory import DirectoryService
from ..services.documents import DocumentRepository
from ..services.search import DocumentSearchFilters
from ..services.uploads import (
    DocumentMetadata,
    DocumentUploadService,
    IncomingFile,
    parse_date,
    parse_id_list,
    parse_int,
    parse_optional_int,
)
from .auth import get_current_athlete, is_staff, require_admin, require_auth, require_staff

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def get_repository(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DocumentRepository:
    return DocumentRepository(db, settings.version_number_max_attempts)


def get_upload_service(
    repository: DocumentRepository = Depends(get_repository),
    storage: StorageProviderBase = Depends(get_storage_provider),
    settings: Settings = Depends(get_settings),
) -> DocumentUploadService:
    return DocumentUploadService(repository, storage, settings.storage_folder_prefix)


def _payload_too_large(limit: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"Upload exceeds the {limit // (1024 * 1024)} MB limit",
    )


def _owned_by(db: Session, user: User, document: Document) -> bool:
    athlete = AuthService.get_athlete_for_user(db, user)
    return athlete is not None and athlete.id == document.athlete_id


def ensure_can_manage(db: Session, user: User, document: Document) -> None:
    if is_staff(user) or _owned_by(db, user, document):
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage this document")


def ensure_can_view(db: Session, repository: DocumentRepository, user: User, document: Document) -> None:
    if is_staff(user) or _owned_by(db, user, document):
        return
    share = repository.find_share(document.id, user.id)
    if share is not None and share.is_active():
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this document")


def _share_expiry(value: Optional[str]) -> Optional[datetime]:
    # A share dated YYYY-MM-DD stays usable through the end of that day.
    expiry = parse_date(value, "expires_at")
    if expiry is None:
        return None
    return datetime.combine(expiry, time.max)


# -- uploads -----------------------------------------------------------------


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    athlete_id: str = Form(...),
    document_type: str = Form(...),
    category_id: Optional[str] = Form(None),
    tag_ids: Optional[str] = Form(None),
    expiry_date: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    service: DocumentUploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_auth),
):
    target_athlete_id = parse_int(athlete_id, "athlete_id")
    metadata = DocumentMetadata(
        document_type=document_type,
        category_id=parse_optional_int(category_id, "category_id"),
        tag_ids=parse_id_list(tag_ids, "tag_ids"),
        expiry_date=parse_date(expiry_date, "expiry_date"),
        notes=notes,
    )

    if not is_staff(current_user):
        athlete = AuthService.get_athlete_for_user(db, current_user)
        if athlete is None or athlete.id != target_athlete_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Athletes can only upload their own documents")

    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise _payload_too_large(settings.max_upload_bytes)

    incoming = IncomingFile(filename=file.filename or "unnamed", data=data, content_type=file.content_type)
    return await run_in_threadpool(service.upload_document, target_athlete_id, incoming, metadata)


@router.post("/bulk", response_model=List[BulkUploadResultResponse])
async def bulk_upload_documents(
    request: Request,
    storage: StorageProviderBase = Depends(get_storage_provider),
    session_factory: sessionmaker = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_staff),
):
    """Upload one file per athlete; each athlete's file arrives as `file_<athlete_id>`."""
    form = await request.form()

    athlete_ids = parse_id_list(form.get("athlete_ids"), "athlete_ids")
    if not athlete_ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="athlete_ids is required")
    document_type = form.get("document_type")
    if not document_type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="document_type is required")

    metadata = DocumentMetadata(
        document_type=document_type,
        category_id=parse_optional_int(form.get("category_id"), "category_id"),
        tag_ids=parse_id_list(form.get("tag_ids"), "tag_ids"),
        expiry_date=parse_date(form.get("expiry_date"), "expiry_date"),
        notes=form.get("notes"),
    )

    # Each part is read once; an athlete listed twice gets the same file twice.
    files: Dict[int, Optional[IncomingFile]] = {}
    total_bytes = 0
    for athlete_id in athlete_ids:
        if athlete_id in files:
            continue
        part = form.get(f"file_{athlete_id}")
        if not isinstance(part, StarletteUploadFile):
            files[athlete_id] = None
            continue
        data = await part.read()
        total_bytes += len(data)
        if total_bytes > settings.max_bulk_upload_bytes:
            raise _payload_too_large(settings.max_bulk_upload_bytes)
        files[athlete_id] = IncomingFile(filename=part.filename or "unnamed", data=data, content_type=part.content_type)

    items = [BulkUploadItem(athlete_id=athlete_id, file=files[athlete_id]) for athlete_id in athlete_ids]

    logger.info(f"Bulk upload of {len(items)} documents requested by user {current_user.id}")
    orchestrator = BulkUploadOrchestrator(
        session_factory,
        storage,
        settings.storage_folder_prefix,
        settings.version_number_max_attempts,
    )
    results = await orchestrator.run(items, metadata)
    return [
        BulkUploadResultResponse(athlete_id=r.athlete_id, document=r.document, error=r.error)
        for r in results
    ]


# -- collection reads --------------------------------------------------------


@router.get("/athlete/{athlete_id}", response_model=List[DocumentResponse])
def list_athlete_documents(
    athlete_id: int,
    repository: DocumentRepository = Depends(get_repository),
    athlete: Optional[Athlete] = Depends(get_current_athlete),
    current_user: User = Depends(require_auth),
):
    if not is_staff(current_user) and (athlete is None or athlete.id != athlete_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view these documents")
    return repository.get_by_athlete(athlete_id)


@router.get("/me", response_model=List[DocumentResponse])
def list_my_documents(
    repository: DocumentRepository = Depends(get_repository),
    athlete: Optional[Athlete] = Depends(get_current_athlete),
):
    if athlete is None:
        return []
    return repository.get_by_athlete(athlete.id)


@router.delete("/me/{document_id}", response_model=MessageResponse)
def delete_my_document(
    document_id: int,
    repository: DocumentRepository = Depends(get_repository),
    uploads: DocumentUploadService = Depends(get_upload_service),
    athlete: Optional[Athlete] = Depends(get_current_athlete),
):
    document = repository.get_by_id(document_id)
    if athlete is None or document.athlete_id != athlete.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only delete your own documents")
    uploads.delete_document(document.id)
    return MessageResponse(message="Document deleted")


@router.get("/pending", response_model=List[DocumentResponse])
def list_pending_documents(
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_staff),
):
    return repository.get_pending()


@router.get("/expiring", response_model=List[DocumentResponse])
def list_expiring_documents(
    days: Optional[int] = Query(None, ge=0),
    repository: DocumentRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_staff),
):
    return repository.get_expiring(days if days is not None else settings.expiring_window_days)


@router.get("/expired", response_model=List[DocumentResponse])
def list_expired_documents(
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_staff),
):
    return repository.get_expired()


@router.get("/search", response_model=List[DocumentResponse])
def search_documents(
    request: Request,
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_staff),
):
    filters = DocumentSearchFilters.from_params(request.query_params)
    return repository.search(filters)


# -- directory ---------------------------------------------------------------


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    return DirectoryService.list_categories(db)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    try:
        return DirectoryService.create_category(db, payload.name, payload.description, payload.color)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Category '{payload.name}' already exists")


@router.get("/tags", response_model=List[TagResponse])
def list_tags(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_auth),
):
    return DirectoryService.list_tags(db)


@router.post("/tags", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
def create_tag(
    payload: TagCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    try:
        return DirectoryService.create_tag(db, payload.name, payload.color)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Tag '{payload.name}' already exists")


@router.get("/shared-with-me", response_model=List[SharedDocumentResponse])
def list_shared_with_me(
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_auth),
):
    now = datetime.utcnow()
    return [share for share in repository.get_shares_for_user(current_user.id) if share.is_active(now)]


# -- single document ---------------------------------------------------------


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_auth),
):
    document = repository.get_by_id(document_id)
    ensure_can_view(db, repository, current_user, document)
    return document


@router.post("/{document_id}/validate", response_model=DocumentResponse)
def validate_document(
    document_id: int,
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_admin),
):
    return repository.validate(document_id, current_user.id)


@router.post("/{document_id}/reject", response_model=DocumentResponse)
def reject_document(
    document_id: int,
    payload: Optional[RejectRequest] = None,
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_admin),
):
    reason = payload.reason if payload else ""
    return repository.reject(document_id, current_user.id, reason)


@router.delete("/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: int,
    uploads: DocumentUploadService = Depends(get_upload_service),
    current_user: User = Depends(require_admin),
):
    uploads.delete_document(document_id)
    return MessageResponse(message="Document deleted")


def _serve_document(document: Document, storage: StorageProviderBase, settings: Settings, disposition: str):
    location = StorageLocation.from_locator(document.file_url)
    media_type = document.mime_type or "application/octet-stream"

    if not location.is_remote:
        if not os.path.exists(location.value):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document file not found")
        return FileResponse(
            path=location.value,
            filename=document.file_name,
            media_type=media_type,
            content_disposition_type=disposition,
        )

    content = storage.fetch(location.value, timeout=settings.storage_upload_timeout_seconds)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"{disposition}; filename*=utf-8''{quote(document.file_name)}"},
    )


@router.get("/{document_id}/download")
def download_document(
    document_id: int,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    storage: StorageProviderBase = Depends(get_storage_provider),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_auth),
):
    document = repository.get_by_id(document_id)
    ensure_can_view(db, repository, current_user, document)
    return _serve_document(document, storage, settings, "attachment")


@router.get("/{document_id}/preview")
def preview_document(
    document_id: int,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    storage: StorageProviderBase = Depends(get_storage_provider),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_auth),
):
    document = repository.get_by_id(document_id)
    ensure_can_view(db, repository, current_user, document)
    return _serve_document(document, storage, settings, "inline")


# -- versions ----------------------------------------------------------------


@router.post("/{document_id}/versions", response_model=DocumentVersionResponse, status_code=status.HTTP_201_CREATED)
async def upload_document_version(
    document_id: int,
    file: UploadFile = File(...),
    notes: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    service: DocumentUploadService = Depends(get_upload_service),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(require_auth),
):
    document = await run_in_threadpool(service.repository.get_by_id, document_id)
    ensure_can_manage(db, current_user, document)

    data = await file.read()
    if len(data) > settings.max_upload_bytes:
        raise _payload_too_large(settings.max_upload_bytes)

    incoming = IncomingFile(filename=file.filename or "unnamed", data=data, content_type=file.content_type)
    return await run_in_threadpool(service.upload_version, document_id, incoming, notes, current_user.id)


@router.get("/{document_id}/versions", response_model=List[DocumentVersionResponse])
def list_document_versions(
    document_id: int,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_auth),
):
    document = repository.get_by_id(document_id)
    ensure_can_view(db, repository, current_user, document)
    return repository.get_versions_by_document(document_id)


# -- shares ------------------------------------------------------------------


@router.post("/{document_id}/shares", response_model=DocumentShareResponse, status_code=status.HTTP_201_CREATED)
def share_document(
    document_id: int,
    payload: ShareRequest,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_auth),
):
    expires_at = _share_expiry(payload.expires_at)
    document = repository.get_by_id(document_id)
    ensure_can_manage(db, current_user, document)
    return repository.share_document(
        document_id,
        shared_by=current_user.id,
        shared_with=payload.shared_with,
        permission_level=payload.permission_level,
        notes=payload.notes,
        expires_at=expires_at,
    )


@router.get("/{document_id}/shares", response_model=List[DocumentShareResponse])
def list_document_shares(
    document_id: int,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_auth),
):
    document = repository.get_by_id(document_id)
    ensure_can_manage(db, current_user, document)
    return repository.get_shares_by_document(document_id)


@router.delete("/{document_id}/shares", response_model=MessageResponse)
def unshare_document(
    document_id: int,
    payload: UnshareRequest,
    db: Session = Depends(get_db),
    repository: DocumentRepository = Depends(get_repository),
    current_user: User = Depends(require_auth),
):
    document = repository.get_by_id(document_id)
    ensure_can_manage(db, current_user, document)
    removed = repository.unshare_document(document_id, payload.user_id)
    if removed:
        return MessageResponse(message="Share removed")
    return MessageResponse(message="No share to remove")
