from .base import (
    LocationKind,
    ResourceKind,
    StorageError,
    StorageLocation,
    StorageProviderBase,
    StoredObject,
)
from .local import LocalStorageProvider
from .simulated import SimulatedStorageProvider
from .factory import build_storage_provider, get_storage_provider

__all__ = [
    "LocationKind",
    "ResourceKind",
    "StorageError",
    "StorageLocation",
    "StorageProviderBase",
    "StoredObject",
    "LocalStorageProvider",
    "SimulatedStorageProvider",
    "build_storage_provider",
    "get_storage_provider",
]
