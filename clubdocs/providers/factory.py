from functools import lru_cache

from ..config import Settings, get_settings
from .base import StorageProviderBase
from .local import LocalStorageProvider
from .simulated import SimulatedStorageProvider


def build_storage_provider(settings: Settings) -> StorageProviderBase:
    backend = settings.storage_backend.lower()
    if backend == "local":
        return LocalStorageProvider(settings.upload_dir)
    if backend == "simulated":
        return SimulatedStorageProvider()
    if backend == "s3":
        from .s3 import S3StorageProvider

        return S3StorageProvider(
            bucket=settings.s3_bucket,
            endpoint_url=settings.s3_endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            region=settings.s3_region,
            public_base_url=settings.s3_public_base_url,
            timeout_seconds=settings.storage_upload_timeout_seconds,
        )
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


@lru_cache()
def get_storage_provider() -> StorageProviderBase:
    return build_storage_provider(get_settings())
