from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Optional

import httpx


class ResourceKind(str, Enum):
    RAW = "raw"
    IMAGE = "image"
    AUTO = "auto"


class StorageError(Exception):
    pass


@dataclass
class StoredObject:
    url: str
    key: str
    size: Optional[int] = None


class StorageProviderBase(ABC):
    """Object storage used for document bytes.

    Uploads are single-attempt: implementations raise StorageError on any
    failure and never retry.
    """

    @abstractmethod
    def upload(
        self,
        stream: BinaryIO,
        name: str,
        folder: str,
        kind: ResourceKind = ResourceKind.RAW,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        pass

    @abstractmethod
    def delete(self, url: str) -> bool:
        pass

    def fetch(self, url: str, timeout: float = 30.0) -> bytes:
        """Download a remotely stored object. Raises StorageError on failure."""
        try:
            response = httpx.get(url, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Could not fetch {url}: {e}") from e
        return response.content


class LocationKind(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class StorageLocation:
    """Where a document's bytes live: a remote URL or a path on local disk."""

    kind: LocationKind
    value: str

    @property
    def is_remote(self) -> bool:
        return self.kind == LocationKind.REMOTE

    @classmethod
    def from_locator(cls, locator: str) -> "StorageLocation":
        lowered = (locator or "").lower()
        if lowered.startswith(("http://", "https://", "s3://", "memory://")):
            return cls(kind=LocationKind.REMOTE, value=locator)
        return cls(kind=LocationKind.LOCAL, value=locator)
