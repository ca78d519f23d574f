import asyncio

import pytest

from clubdocs.providers import SimulatedStorageProvider
from clubdocs.services.bulk_upload import BulkUploadItem, BulkUploadOrchestrator
from clubdocs.services.documents import DocumentRepository
from clubdocs.services.uploads import DocumentMetadata, IncomingFile


def pdf(name, payload=b"%PDF-1.4 test"):
    return IncomingFile(filename=name, data=payload, content_type="application/pdf")


def run(orchestrator, items, metadata=None):
    metadata = metadata or DocumentMetadata(document_type="medical_certificate")
    return asyncio.run(orchestrator.run(items, metadata))


@pytest.fixture
def orchestrator(session_factory, storage):
    return BulkUploadOrchestrator(session_factory, storage, "club/documents")


class TestBulkUploadOrchestrator:
    def test_every_item_succeeds_in_input_order(self, orchestrator, storage, athlete, other_athlete, db):
        results = run(
            orchestrator,
            [
                BulkUploadItem(athlete_id=other_athlete.id, file=pdf("hugo.pdf")),
                BulkUploadItem(athlete_id=athlete.id, file=pdf("lea.pdf")),
            ],
        )

        assert [r.athlete_id for r in results] == [other_athlete.id, athlete.id]
        assert all(r.ok for r in results)
        assert results[0].document.file_name == "hugo.pdf"
        assert results[0].document.validation_status == "pending"
        assert results[1].document.athlete_id == athlete.id
        assert len(storage.objects) == 2
        assert all(f"athlete_{r.athlete_id}/" in r.document.file_url for r in results)

    def test_missing_file_fails_only_its_slot(self, orchestrator, athlete, other_athlete, db):
        results = run(
            orchestrator,
            [
                BulkUploadItem(athlete_id=athlete.id, file=pdf("lea.pdf")),
                BulkUploadItem(athlete_id=other_athlete.id, file=None),
            ],
        )

        assert results[0].ok
        assert results[1].document is None
        assert results[1].error == f"Error retrieving file: no file provided in field file_{other_athlete.id}"
        assert len(DocumentRepository(db).get_by_athlete(athlete.id)) == 1
        assert DocumentRepository(db).get_by_athlete(other_athlete.id) == []

    def test_storage_failure_is_isolated(self, session_factory, athlete, other_athlete, db):
        storage = SimulatedStorageProvider(fail_names={"broken.pdf"})
        orchestrator = BulkUploadOrchestrator(session_factory, storage, "club/documents")

        results = run(
            orchestrator,
            [
                BulkUploadItem(athlete_id=athlete.id, file=pdf("broken.pdf")),
                BulkUploadItem(athlete_id=other_athlete.id, file=pdf("fine.pdf")),
            ],
        )

        assert results[0].error.startswith("Error uploading file to storage:")
        assert results[1].ok
        assert DocumentRepository(db).get_by_athlete(athlete.id) == []

    def test_store_failure_deletes_the_uploaded_blob(self, orchestrator, storage, athlete, db):
        results = run(
            orchestrator,
            [
                BulkUploadItem(athlete_id=9999, file=pdf("ghost.pdf")),
                BulkUploadItem(athlete_id=athlete.id, file=pdf("lea.pdf")),
            ],
        )

        assert not results[0].ok
        assert "FOREIGN KEY" in results[0].error.upper()
        assert results[1].ok
        assert len(storage.deleted) == 1
        assert "athlete_9999/" in storage.deleted[0]
        assert list(storage.objects) == [results[1].document.file_url]

    def test_shared_metadata_applies_to_every_document(self, orchestrator, athlete, other_athlete, db):
        from datetime import date

        from clubdocs.services.directory import DirectoryService

        tag = DirectoryService.create_tag(db, "competition")
        metadata = DocumentMetadata(
            document_type="license",
            tag_ids=[tag.id],
            expiry_date=date(2027, 6, 30),
            notes="Season 2026/27",
        )

        results = run(
            orchestrator,
            [
                BulkUploadItem(athlete_id=athlete.id, file=pdf("a.pdf")),
                BulkUploadItem(athlete_id=other_athlete.id, file=pdf("b.pdf")),
            ],
            metadata,
        )

        for result in results:
            assert result.document.document_type == "license"
            assert result.document.expiry_date == date(2027, 6, 30)
            assert [t.name for t in result.document.tags] == ["competition"]

    def test_many_concurrent_items(self, orchestrator, db):
        from clubdocs.models.athlete import Athlete

        athletes = [Athlete(first_name=f"A{i}", last_name="Runner") for i in range(8)]
        db.add_all(athletes)
        db.commit()

        results = run(
            orchestrator,
            [BulkUploadItem(athlete_id=a.id, file=pdf(f"runner_{a.id}.pdf")) for a in athletes],
        )

        assert [r.athlete_id for r in results] == [a.id for a in athletes]
        assert all(r.ok for r in results), [r.error for r in results]
        assert len({r.document.id for r in results}) == len(athletes)

    def test_empty_batch(self, orchestrator):
        assert run(orchestrator, []) == []
