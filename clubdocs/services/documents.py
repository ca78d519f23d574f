import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, insert, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..models.document import (
    Document,
    DocumentShare,
    DocumentVersion,
    PermissionLevel,
    ValidationStatus,
    document_tag_relations,
)
from ..state_machine import validate_status_transition

logger = logging.getLogger(__name__)


class DocumentError(Exception):
    pass


class DocumentNotFoundError(DocumentError):
    pass


class InvalidDocumentInputError(DocumentError):
    pass


def parse_permission_level(value: str) -> PermissionLevel:
    try:
        return PermissionLevel(value)
    except ValueError:
        allowed = ", ".join(p.value for p in PermissionLevel)
        raise InvalidDocumentInputError(f"Invalid permission level '{value}'. Expected one of: {allowed}")


def with_relations(query):
    """Attach category (joined) and tags (second batched query by document id)."""
    return query.options(joinedload(Document.category), selectinload(Document.tags))


class DocumentRepository:
    def __init__(self, db: Session, version_number_max_attempts: int = 3):
        self.db = db
        self.version_number_max_attempts = version_number_max_attempts

    # -- documents -----------------------------------------------------------

    def create(self, document: Document, tag_ids: Optional[Iterable[int]] = None) -> Document:
        """Insert a document and its tag relations in one transaction."""
        document.id = None
        document.validation_status = ValidationStatus.PENDING.value
        document.validated_by = None
        document.validated_at = None
        document.rejection_reason = None
        document.uploaded_at = datetime.utcnow()

        unique_tag_ids = list(dict.fromkeys(tag_ids or []))
        try:
            self.db.add(document)
            self.db.flush()
            if unique_tag_ids:
                self.db.execute(
                    insert(document_tag_relations),
                    [{"document_id": document.id, "tag_id": tag_id} for tag_id in unique_tag_ids],
                )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(
            f"Created document {document.id} for athlete {document.athlete_id} "
            f"(type={document.document_type}, tags={unique_tag_ids})"
        )
        return self.get_by_id(document.id)

    def find_by_id(self, document_id: int) -> Optional[Document]:
        return self.db.execute(
            with_relations(select(Document)).where(Document.id == document_id)
        ).unique().scalar_one_or_none()

    def get_by_id(self, document_id: int) -> Document:
        document = self.find_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def _list(self, query) -> List[Document]:
        return list(self.db.execute(with_relations(query)).unique().scalars().all())

    def get_by_athlete(self, athlete_id: int) -> List[Document]:
        return self._list(
            select(Document)
            .where(Document.athlete_id == athlete_id)
            .order_by(Document.uploaded_at.desc(), Document.id.desc())
        )

    def get_pending(self) -> List[Document]:
        return self._list(
            select(Document)
            .where(Document.validation_status == ValidationStatus.PENDING.value)
            .order_by(Document.uploaded_at.asc(), Document.id.asc())
        )

    def get_expiring(self, window_days: int = 30, today: Optional[date] = None) -> List[Document]:
        today = today or date.today()
        horizon = today + timedelta(days=window_days)
        return self._list(
            select(Document)
            .where(
                Document.expiry_date.is_not(None),
                Document.expiry_date >= today,
                Document.expiry_date <= horizon,
            )
            .order_by(Document.expiry_date.asc(), Document.id.asc())
        )

    def get_expired(self, today: Optional[date] = None) -> List[Document]:
        today = today or date.today()
        return self._list(
            select(Document)
            .where(Document.expiry_date.is_not(None), Document.expiry_date < today)
            .order_by(Document.expiry_date.asc(), Document.id.asc())
        )

    def search(self, filters) -> List[Document]:
        from .search import build_search_query

        return self._list(build_search_query(filters))

    # -- validation ----------------------------------------------------------

    def _set_validation(
        self,
        document_id: int,
        target: ValidationStatus,
        admin_id: int,
        reason: Optional[str] = None,
    ) -> Document:
        document = self.db.get(Document, document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        validate_status_transition(ValidationStatus(document.validation_status), target)

        document.validation_status = target.value
        document.validated_by = admin_id
        document.validated_at = datetime.utcnow()
        document.rejection_reason = reason if target == ValidationStatus.REJECTED else None
        self.db.commit()

        logger.info(f"Document {document_id} marked {target.value} by admin {admin_id}")
        return self.get_by_id(document_id)

    def validate(self, document_id: int, admin_id: int) -> Document:
        return self._set_validation(document_id, ValidationStatus.APPROVED, admin_id)

    def reject(self, document_id: int, admin_id: int, reason: str) -> Document:
        return self._set_validation(document_id, ValidationStatus.REJECTED, admin_id, reason=reason or "")

    # -- deletion ------------------------------------------------------------

    def delete(self, document_id: int) -> List[str]:
        """Remove shares, versions and tag relations, then the document row.

        Returns the storage locators of the document and its versions so the
        caller can discard the blobs. Instances of the deleted rows held by
        this session are detached with their loaded values intact.
        """
        document = self.db.get(Document, document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        bind_inspector = inspect(self.db.get_bind())
        present = {
            table.name: bind_inspector.has_table(table.name)
            for table in (DocumentShare.__table__, DocumentVersion.__table__, document_tag_relations)
        }

        file_urls = [document.file_url]
        stale = [document]
        if present[DocumentVersion.__tablename__]:
            versions = self.db.execute(
                select(DocumentVersion.id, DocumentVersion.file_url).where(DocumentVersion.document_id == document_id)
            ).all()
            file_urls.extend(url for _, url in versions)
            stale.extend(self._cached(DocumentVersion, version_id) for version_id, _ in versions)
        if present[DocumentShare.__tablename__]:
            share_ids = self.db.execute(
                select(DocumentShare.id).where(DocumentShare.document_id == document_id)
            ).scalars().all()
            stale.extend(self._cached(DocumentShare, share_id) for share_id in share_ids)

        # Load expired attributes now; once detached the instances cannot refresh.
        stale = [instance for instance in stale if instance is not None]
        for instance in stale:
            if inspect(instance).expired_attributes:
                self.db.refresh(instance)

        for table in (DocumentShare.__table__, DocumentVersion.__table__, document_tag_relations):
            if not present[table.name]:
                logger.warning(f"Skipping cleanup of missing table {table.name} for document {document_id}")
                continue
            self.db.execute(delete(table).where(table.c.document_id == document_id))

        result = self.db.execute(delete(Document.__table__).where(Document.__table__.c.id == document_id))
        if result.rowcount == 0:
            self.db.rollback()
            raise DocumentNotFoundError(f"Document {document_id} not found")

        for instance in stale:
            if instance in self.db:
                self.db.expunge(instance)
        self.db.commit()

        logger.info(f"Deleted document {document_id} ({len(file_urls) - 1} versions)")
        return file_urls

    def _cached(self, model, pk: int):
        """The session's instance for a row, if it holds one, without loading it."""
        return self.db.identity_map.get(self.db.identity_key(model, pk))

    # -- versions ------------------------------------------------------------

    def get_latest_version_number(self, document_id: int) -> int:
        return self.db.execute(
            select(func.coalesce(func.max(DocumentVersion.version_number), 0))
            .where(DocumentVersion.document_id == document_id)
        ).scalar_one()

    def create_version(
        self,
        document_id: int,
        *,
        file_name: str,
        file_url: str,
        file_size_bytes: int,
        mime_type: Optional[str] = None,
        notes: Optional[str] = None,
        uploaded_by: Optional[int] = None,
    ) -> DocumentVersion:
        """Append a version numbered max(existing) + 1.

        Two concurrent uploads can compute the same number; the unique
        (document_id, version_number) constraint rejects the loser, which
        recomputes and retries.
        """
        if self.db.get(Document, document_id) is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        attempts = max(1, self.version_number_max_attempts)
        for attempt in range(1, attempts + 1):
            version = DocumentVersion(
                document_id=document_id,
                version_number=self.get_latest_version_number(document_id) + 1,
                file_name=file_name,
                file_url=file_url,
                file_size_bytes=file_size_bytes,
                mime_type=mime_type,
                notes=notes,
                uploaded_by=uploaded_by,
                uploaded_at=datetime.utcnow(),
            )
            self.db.add(version)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if attempt == attempts:
                    raise
                logger.warning(
                    f"Version number {version.version_number} for document {document_id} "
                    f"already taken; retrying ({attempt}/{attempts})"
                )
                continue

            self.db.refresh(version)
            logger.info(f"Created version {version.version_number} of document {document_id}")
            return version

    def get_versions_by_document(self, document_id: int) -> List[DocumentVersion]:
        return list(
            self.db.execute(
                select(DocumentVersion)
                .where(DocumentVersion.document_id == document_id)
                .order_by(DocumentVersion.version_number.desc())
            ).scalars().all()
        )

    # -- shares --------------------------------------------------------------

    def share_document(
        self,
        document_id: int,
        shared_by: int,
        shared_with: int,
        permission_level: str,
        notes: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> DocumentShare:
        """Grant access, overwriting any existing grant for the same user."""
        level = parse_permission_level(permission_level)
        if self.db.get(Document, document_id) is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        share = self.find_share(document_id, shared_with)
        if share is None:
            share = DocumentShare(
                document_id=document_id,
                shared_by=shared_by,
                shared_with=shared_with,
                permission_level=level.value,
                notes=notes,
                expires_at=expires_at,
                shared_at=datetime.utcnow(),
            )
            self.db.add(share)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost an insert race for the same grantee; update the winner's row instead.
                self.db.rollback()
                share = self.find_share(document_id, shared_with)
                if share is None:
                    raise
                self._update_share(share, level, notes, expires_at)
        else:
            self._update_share(share, level, notes, expires_at)

        self.db.refresh(share)
        logger.info(
            f"Document {document_id} shared with user {shared_with} "
            f"at '{share.permission_level}' by user {shared_by}"
        )
        return share

    def find_share(self, document_id: int, shared_with: int) -> Optional[DocumentShare]:
        return self.db.execute(
            select(DocumentShare).where(
                DocumentShare.document_id == document_id,
                DocumentShare.shared_with == shared_with,
            )
        ).scalar_one_or_none()

    def _update_share(
        self,
        share: DocumentShare,
        level: PermissionLevel,
        notes: Optional[str],
        expires_at: Optional[datetime],
    ) -> None:
        share.permission_level = level.value
        share.notes = notes
        share.expires_at = expires_at
        self.db.commit()

    def unshare_document(self, document_id: int, user_id: int) -> int:
        result = self.db.execute(
            delete(DocumentShare).where(
                DocumentShare.document_id == document_id,
                DocumentShare.shared_with == user_id,
            )
        )
        self.db.commit()
        return result.rowcount

    def get_shares_by_document(self, document_id: int) -> List[DocumentShare]:
        return list(
            self.db.execute(
                select(DocumentShare)
                .where(DocumentShare.document_id == document_id)
                .order_by(DocumentShare.shared_at.desc(), DocumentShare.id.desc())
            ).scalars().all()
        )

    def get_shares_for_user(self, user_id: int) -> List[DocumentShare]:
        return list(
            self.db.execute(
                select(DocumentShare)
                .options(
                    joinedload(DocumentShare.document).joinedload(Document.category),
                    joinedload(DocumentShare.document).selectinload(Document.tags),
                )
                .where(DocumentShare.shared_with == user_id)
                .order_by(DocumentShare.shared_at.desc(), DocumentShare.id.desc())
            ).unique().scalars().all()
        )
