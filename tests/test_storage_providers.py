import io
import os

import httpx
import pytest
from botocore.exceptions import ClientError

from clubdocs.config import Settings
from clubdocs.providers import (
    LocalStorageProvider,
    LocationKind,
    ResourceKind,
    SimulatedStorageProvider,
    StorageError,
    StorageLocation,
    build_storage_provider,
)
from clubdocs.providers.s3 import S3StorageProvider


class TestStorageLocation:
    @pytest.mark.parametrize(
        "locator",
        [
            "https://bucket.s3.eu-west-3.amazonaws.com/club/documents/athlete_1/a.pdf",
            "http://minio:9000/club/a.pdf",
            "memory://club/documents/athlete_1/a.pdf",
        ],
    )
    def test_urls_are_remote(self, locator):
        location = StorageLocation.from_locator(locator)
        assert location.kind == LocationKind.REMOTE
        assert location.is_remote
        assert location.value == locator

    def test_paths_are_local(self):
        location = StorageLocation.from_locator("uploads/documents/athlete_1/a.pdf")
        assert location.kind == LocationKind.LOCAL
        assert not location.is_remote


class TestSimulatedStorage:
    def test_upload_and_fetch(self):
        storage = SimulatedStorageProvider()
        stored = storage.upload(io.BytesIO(b"hello"), "a.pdf", "club/documents/athlete_1", kind=ResourceKind.RAW)

        assert stored.url == "memory://club/documents/athlete_1/a.pdf"
        assert stored.size == 5
        assert storage.fetch(stored.url) == b"hello"
        assert storage.kinds[stored.url] == ResourceKind.RAW

    def test_forced_failure(self):
        storage = SimulatedStorageProvider(force_fail=True)
        with pytest.raises(StorageError):
            storage.upload(io.BytesIO(b"x"), "a.pdf", "club")
        assert storage.objects == {}

    def test_delete_and_reset(self):
        storage = SimulatedStorageProvider()
        stored = storage.upload(io.BytesIO(b"x"), "a.pdf", "club")

        assert storage.delete(stored.url)
        assert not storage.delete(stored.url)
        with pytest.raises(StorageError):
            storage.fetch(stored.url)

        storage.reset()
        assert storage.deleted == []


class TestLocalStorage:
    def test_upload_writes_under_athlete_folder(self, tmp_path):
        storage = LocalStorageProvider(str(tmp_path))
        stored = storage.upload(io.BytesIO(b"data"), "1_cert.pdf", "club/documents/athlete_3")

        assert stored.url == os.path.join(str(tmp_path), "athlete_3", "1_cert.pdf")
        with open(stored.url, "rb") as f:
            assert f.read() == b"data"
        assert stored.size == 4

    def test_delete_removes_file(self, tmp_path):
        storage = LocalStorageProvider(str(tmp_path))
        stored = storage.upload(io.BytesIO(b"data"), "cert.pdf", "athlete_1")

        assert storage.delete(stored.url)
        assert not os.path.exists(stored.url)
        assert not storage.delete(stored.url)

    def test_unwritable_root_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        storage = LocalStorageProvider(str(blocker))

        with pytest.raises(StorageError):
            storage.upload(io.BytesIO(b"data"), "cert.pdf", "athlete_1")


class FakeS3Client:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = []
        self.deleted = []
        self.bodies = {}

    def upload_fileobj(self, stream, bucket, key, ExtraArgs=None):
        if self.fail:
            raise ClientError({"Error": {"Code": "503", "Message": "Slow Down"}}, "PutObject")
        self.uploads.append((bucket, key, ExtraArgs))
        self.bodies[key] = stream.read()

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))

    def get_object(self, Bucket, Key):
        return {"Body": io.BytesIO(self.bodies[Key])}


class TestS3Storage:
    def test_upload_sets_content_type_and_kind(self):
        client = FakeS3Client()
        storage = S3StorageProvider(bucket="club-docs", region="eu-west-3", client=client)

        stored = storage.upload(io.BytesIO(b"pdf"), "1_cert.pdf", "club/documents/athlete_2", content_type="application/pdf")

        assert stored.key == "club/documents/athlete_2/1_cert.pdf"
        assert stored.url == "https://club-docs.s3.eu-west-3.amazonaws.com/club/documents/athlete_2/1_cert.pdf"
        bucket, key, extra = client.uploads[0]
        assert bucket == "club-docs"
        assert extra["ContentType"] == "application/pdf"
        assert extra["Metadata"] == {"resource-kind": "raw"}

    def test_public_base_url_and_delete(self):
        client = FakeS3Client()
        storage = S3StorageProvider(
            bucket="club-docs",
            endpoint_url="http://minio:9000",
            public_base_url="https://files.club.example/",
            client=client,
        )
        stored = storage.upload(io.BytesIO(b"pdf"), "a.pdf", "club")

        assert stored.url == "https://files.club.example/club/a.pdf"
        assert storage.fetch(stored.url) == b"pdf"
        assert storage.delete(stored.url)
        assert client.deleted == [("club-docs", "club/a.pdf")]
        assert not storage.delete("https://elsewhere.example/a.pdf")

    def test_client_error_becomes_storage_error(self):
        storage = S3StorageProvider(bucket="club-docs", client=FakeS3Client(fail=True))
        with pytest.raises(StorageError):
            storage.upload(io.BytesIO(b"pdf"), "a.pdf", "club")

    def test_bucket_is_required(self):
        with pytest.raises(ValueError):
            S3StorageProvider(bucket="", client=FakeS3Client())


class TestRemoteFetch:
    def test_fetch_downloads_over_http(self, monkeypatch):
        def fake_get(url, timeout, follow_redirects):
            return httpx.Response(200, content=b"remote bytes", request=httpx.Request("GET", url))

        monkeypatch.setattr("clubdocs.providers.base.httpx.get", fake_get)
        storage = LocalStorageProvider("unused")
        assert storage.fetch("https://cdn.example/a.pdf") == b"remote bytes"

    def test_upstream_error_becomes_storage_error(self, monkeypatch):
        def fake_get(url, timeout, follow_redirects):
            return httpx.Response(404, request=httpx.Request("GET", url))

        monkeypatch.setattr("clubdocs.providers.base.httpx.get", fake_get)
        with pytest.raises(StorageError):
            LocalStorageProvider("unused").fetch("https://cdn.example/missing.pdf")


class TestFactory:
    def test_builds_configured_backend(self, tmp_path):
        assert isinstance(build_storage_provider(Settings(storage_backend="simulated")), SimulatedStorageProvider)
        local = build_storage_provider(Settings(storage_backend="local", upload_dir=str(tmp_path)))
        assert isinstance(local, LocalStorageProvider)
        assert local.root_dir == str(tmp_path)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_storage_provider(Settings(storage_backend="ftp"))
