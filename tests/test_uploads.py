import os
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from clubdocs.providers import LocalStorageProvider, SimulatedStorageProvider, StorageError
from clubdocs.services.documents import DocumentNotFoundError, InvalidDocumentInputError
from clubdocs.services.uploads import (
    DocumentMetadata,
    DocumentUploadService,
    IncomingFile,
    parse_date,
    parse_id_list,
    parse_int,
    parse_optional_int,
)


class TestParsers:
    def test_parse_int(self):
        assert parse_int(" 42 ", "athlete_id") == 42
        with pytest.raises(InvalidDocumentInputError):
            parse_int("4x2", "athlete_id")
        with pytest.raises(InvalidDocumentInputError):
            parse_int(None, "athlete_id")

    def test_parse_optional_int(self):
        assert parse_optional_int("", "category_id") is None
        assert parse_optional_int(None, "category_id") is None
        assert parse_optional_int("7", "category_id") == 7

    def test_parse_id_list(self):
        assert parse_id_list("3, 5,8", "tag_ids") == [3, 5, 8]
        assert parse_id_list("3,,5,", "tag_ids") == [3, 5]
        assert parse_id_list("", "tag_ids") == []
        with pytest.raises(InvalidDocumentInputError):
            parse_id_list("3,five", "tag_ids")

    def test_parse_date(self):
        assert parse_date("2026-12-31", "expiry_date") == date(2026, 12, 31)
        assert parse_date("  ", "expiry_date") is None
        with pytest.raises(InvalidDocumentInputError):
            parse_date("2026-13-01", "expiry_date")
        with pytest.raises(InvalidDocumentInputError):
            parse_date("31/12/2026", "expiry_date")


class TestDocumentUploadService:
    def test_upload_stores_raw_file_in_athlete_folder(self, repository, storage, athlete):
        service = DocumentUploadService(repository, storage, "club/documents/")
        document = service.upload_document(
            athlete.id,
            IncomingFile("scan.pdf", b"bytes", "application/pdf"),
            DocumentMetadata(document_type="insurance", notes="2026"),
        )

        assert document.file_url.startswith(f"memory://club/documents/athlete_{athlete.id}/")
        assert document.file_url.endswith("_scan.pdf")
        assert storage.kinds[document.file_url].value == "raw"
        assert document.document_type == "insurance"
        assert document.mime_type == "application/pdf"

    def test_missing_content_type_defaults_to_octet_stream(self, repository, storage, athlete):
        service = DocumentUploadService(repository, storage, "club/documents")
        document = service.upload_document(
            athlete.id,
            IncomingFile("scan", b"bytes"),
            DocumentMetadata(document_type="other"),
        )
        assert document.mime_type == "application/octet-stream"

    def test_storage_failure_writes_nothing(self, db, repository, athlete):
        service = DocumentUploadService(repository, SimulatedStorageProvider(force_fail=True), "club/documents")
        with pytest.raises(StorageError):
            service.upload_document(athlete.id, IncomingFile("a.pdf", b"x"), DocumentMetadata(document_type="other"))
        assert repository.get_by_athlete(athlete.id) == []

    def test_store_failure_removes_uploaded_blob(self, repository, storage, athlete):
        service = DocumentUploadService(repository, storage, "club/documents")
        with pytest.raises(IntegrityError):
            service.upload_document(
                athlete.id,
                IncomingFile("a.pdf", b"x"),
                DocumentMetadata(document_type="other", category_id=999),
            )

        assert storage.objects == {}
        assert len(storage.deleted) == 1

    def test_upload_version_numbers_and_folder(self, repository, storage, athlete, coach):
        service = DocumentUploadService(repository, storage, "club/documents")
        document = service.upload_document(
            athlete.id, IncomingFile("a.pdf", b"v0"), DocumentMetadata(document_type="other")
        )

        first = service.upload_version(document.id, IncomingFile("a_v1.pdf", b"v1"), notes="fix", uploaded_by=coach.id)
        second = service.upload_version(document.id, IncomingFile("a_v2.pdf", b"v2"))

        assert (first.version_number, second.version_number) == (1, 2)
        assert f"athlete_{athlete.id}/" in first.file_url
        assert f"_doc{document.id}_a_v1.pdf" in first.file_url
        assert first.uploaded_by == coach.id
        assert first.file_size_bytes == 2

    def test_upload_version_for_missing_document(self, repository, storage):
        service = DocumentUploadService(repository, storage, "club/documents")
        with pytest.raises(DocumentNotFoundError):
            service.upload_version(404, IncomingFile("a.pdf", b"x"))
        assert storage.objects == {}

    def test_delete_document_discards_every_blob(self, repository, storage, athlete):
        service = DocumentUploadService(repository, storage, "club/documents")
        document = service.upload_document(
            athlete.id, IncomingFile("a.pdf", b"v0"), DocumentMetadata(document_type="other")
        )
        version = service.upload_version(document.id, IncomingFile("a_v1.pdf", b"v1"))
        kept = service.upload_document(
            athlete.id, IncomingFile("b.pdf", b"b"), DocumentMetadata(document_type="other")
        )

        service.delete_document(document.id)

        assert list(storage.objects) == [kept.file_url]
        assert sorted(storage.deleted) == sorted([document.file_url, version.file_url])
        assert repository.find_by_id(document.id) is None

    def test_delete_document_removes_local_file(self, repository, athlete, tmp_path):
        storage = LocalStorageProvider(str(tmp_path))
        service = DocumentUploadService(repository, storage, "club/documents")
        document = service.upload_document(
            athlete.id, IncomingFile("a.pdf", b"v0"), DocumentMetadata(document_type="other")
        )
        path = document.file_url
        assert os.path.exists(path)

        service.delete_document(document.id)
        assert not os.path.exists(path)

    def test_delete_missing_document_touches_no_blob(self, repository, storage):
        service = DocumentUploadService(repository, storage, "club/documents")
        with pytest.raises(DocumentNotFoundError):
            service.delete_document(404)
        assert storage.deleted == []
