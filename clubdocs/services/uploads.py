import io
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..models.document import Document, DocumentType, DocumentVersion
from ..providers.base import ResourceKind, StorageLocation, StorageProviderBase
from ..providers.local import LocalStorageProvider
from .documents import DocumentRepository, InvalidDocumentInputError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

# document_type is free-form; these are the values the club forms offer.
KNOWN_DOCUMENT_TYPES = frozenset(t.value for t in DocumentType)


def parse_int(value: Optional[str], field_name: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidDocumentInputError(f"Invalid {field_name}: {value!r}")


def parse_optional_int(value: Optional[str], field_name: str) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    return parse_int(value, field_name)


def parse_id_list(value: Optional[str], field_name: str) -> List[int]:
    """Parse a comma separated id list such as "3, 5,8"."""
    if value is None or value.strip() == "":
        return []
    return [parse_int(part, field_name) for part in value.split(",") if part.strip()]


def parse_date(value: Optional[str], field_name: str) -> Optional[date]:
    if value is None or value.strip() == "":
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise InvalidDocumentInputError(f"Invalid {field_name} {value!r}, expected YYYY-MM-DD")


@dataclass
class IncomingFile:
    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class DocumentMetadata:
    document_type: str
    category_id: Optional[int] = None
    tag_ids: List[int] = field(default_factory=list)
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class DocumentUploadService:
    """Moves bytes to object storage, then records the metadata.

    When the database write fails after the upload succeeded, the stored
    object is deleted again before the error propagates.
    """

    def __init__(self, repository: DocumentRepository, storage: StorageProviderBase, folder_prefix: str):
        self.repository = repository
        self.storage = storage
        self.folder_prefix = folder_prefix.rstrip("/")

    def athlete_folder(self, athlete_id: int) -> str:
        return f"{self.folder_prefix}/athlete_{athlete_id}"

    @staticmethod
    def unique_name(filename: str, marker: str = "") -> str:
        base = os.path.basename(filename or "") or "unnamed"
        return f"{uuid.uuid4().hex}_{marker}{base}"

    def _compensate(self, url: str, reason: Exception) -> None:
        logger.warning(f"Store write failed after upload, deleting orphaned blob {url}: {reason}")
        if not self.storage.delete(url):
            logger.error(f"Could not delete orphaned blob {url}")

    def upload_document(self, athlete_id: int, file: IncomingFile, metadata: DocumentMetadata) -> Document:
        if metadata.document_type not in KNOWN_DOCUMENT_TYPES:
            logger.info(f"Uploading document with non-standard type '{metadata.document_type}' for athlete {athlete_id}")

        stored = self.storage.upload(
            io.BytesIO(file.data),
            self.unique_name(file.filename),
            self.athlete_folder(athlete_id),
            kind=ResourceKind.RAW,
            content_type=file.content_type,
        )

        document = Document(
            athlete_id=athlete_id,
            document_type=metadata.document_type,
            category_id=metadata.category_id,
            file_name=file.filename or "unnamed",
            file_url=stored.url,
            file_size_bytes=file.size,
            mime_type=file.content_type or "application/octet-stream",
            expiry_date=metadata.expiry_date,
            notes=metadata.notes,
        )
        try:
            return self.repository.create(document, metadata.tag_ids)
        except SQLAlchemyError as e:
            self._compensate(stored.url, e)
            raise

    def upload_version(
        self,
        document_id: int,
        file: IncomingFile,
        notes: Optional[str] = None,
        uploaded_by: Optional[int] = None,
    ) -> DocumentVersion:
        document = self.repository.get_by_id(document_id)
        stored = self.storage.upload(
            io.BytesIO(file.data),
            self.unique_name(file.filename, marker=f"doc{document_id}_"),
            self.athlete_folder(document.athlete_id),
            kind=ResourceKind.RAW,
            content_type=file.content_type,
        )
        try:
            return self.repository.create_version(
                document_id,
                file_name=file.filename or "unnamed",
                file_url=stored.url,
                file_size_bytes=file.size,
                mime_type=file.content_type or "application/octet-stream",
                notes=notes,
                uploaded_by=uploaded_by,
            )
        except SQLAlchemyError as e:
            self._compensate(stored.url, e)
            raise

    def _discard(self, url: str) -> bool:
        location = StorageLocation.from_locator(url)
        if location.is_remote or isinstance(self.storage, LocalStorageProvider):
            return self.storage.delete(url)
        # Local paths written by an earlier local-disk configuration.
        try:
            os.remove(location.value)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not remove file {location.value}: {e}")
            return False
        return True

    def delete_document(self, document_id: int) -> None:
        """Delete the document rows, then the blobs of the document and every version."""
        file_urls = self.repository.delete(document_id)
        for url in file_urls:
            if not self._discard(url):
                logger.warning(f"Blob {url} of deleted document {document_id} was not removed")
