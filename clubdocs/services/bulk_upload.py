import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..providers.base import StorageError, StorageProviderBase
from ..schemas.document import DocumentResponse
from .documents import DocumentRepository
from .uploads import DocumentMetadata, DocumentUploadService, IncomingFile

logger = logging.getLogger(__name__)


@dataclass
class BulkUploadItem:
    athlete_id: int
    file: Optional[IncomingFile]


@dataclass
class BulkUploadResult:
    athlete_id: int
    document: Optional[DocumentResponse] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BulkUploadOrchestrator:
    """Uploads one file per athlete concurrently.

    Each item runs in its own worker thread with its own database session,
    writes only its own result slot, and never affects the other items.
    Results come back in input order.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        storage: StorageProviderBase,
        folder_prefix: str,
        version_number_max_attempts: int = 3,
    ):
        self.session_factory = session_factory
        self.storage = storage
        self.folder_prefix = folder_prefix
        self.version_number_max_attempts = version_number_max_attempts

    async def run(self, items: Sequence[BulkUploadItem], metadata: DocumentMetadata) -> List[BulkUploadResult]:
        results: List[Optional[BulkUploadResult]] = [None] * len(items)

        async def _run_slot(index: int, item: BulkUploadItem) -> None:
            results[index] = await asyncio.to_thread(self.upload_one, item, metadata)

        await asyncio.gather(*(_run_slot(i, item) for i, item in enumerate(items)))

        succeeded = sum(1 for r in results if r.ok)
        logger.info(f"Bulk upload finished: {succeeded}/{len(items)} succeeded")
        return results

    def upload_one(self, item: BulkUploadItem, metadata: DocumentMetadata) -> BulkUploadResult:
        if item.file is None:
            logger.warning(f"Bulk upload: no file for athlete {item.athlete_id}")
            return BulkUploadResult(
                athlete_id=item.athlete_id,
                error=f"Error retrieving file: no file provided in field file_{item.athlete_id}",
            )

        db = self.session_factory()
        try:
            service = DocumentUploadService(
                DocumentRepository(db, self.version_number_max_attempts),
                self.storage,
                self.folder_prefix,
            )
            document = service.upload_document(item.athlete_id, item.file, metadata)
            return BulkUploadResult(
                athlete_id=item.athlete_id,
                document=DocumentResponse.model_validate(document),
            )
        except StorageError as e:
            logger.warning(f"Bulk upload storage failure for athlete {item.athlete_id}: {e}")
            return BulkUploadResult(
                athlete_id=item.athlete_id,
                error=f"Error uploading file to storage: {e}",
            )
        except Exception as e:
            # Item failures are reported in the item's slot, never raised.
            logger.warning(f"Bulk upload failed for athlete {item.athlete_id}: {e}")
            return BulkUploadResult(athlete_id=item.athlete_id, error=str(e))
        finally:
            db.close()
