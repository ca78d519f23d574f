import logging
from typing import BinaryIO, Dict, Optional, Set

from .base import ResourceKind, StorageError, StorageProviderBase, StoredObject

logger = logging.getLogger(__name__)


class SimulatedStorageProvider(StorageProviderBase):
    """In-memory object store for tests and local demos.

    `fail_names` makes uploads of those file names fail, `force_fail` makes
    every upload fail.
    """

    def __init__(self, force_fail: bool = False, fail_names: Optional[Set[str]] = None):
        self.force_fail = force_fail
        self.fail_names = set(fail_names or ())
        self.objects: Dict[str, bytes] = {}
        self.kinds: Dict[str, ResourceKind] = {}
        self.deleted: list = []

    def upload(
        self,
        stream: BinaryIO,
        name: str,
        folder: str,
        kind: ResourceKind = ResourceKind.RAW,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        key = f"{folder.rstrip('/')}/{name}"
        if self.force_fail or any(name.endswith(n) for n in self.fail_names):
            logger.warning(f"Simulated upload FAILED: key={key}")
            raise StorageError(f"simulated storage failure for {key}")

        data = stream.read()
        url = f"memory://{key}"
        self.objects[url] = data
        self.kinds[url] = kind
        logger.info(f"Simulated upload SUCCESS: key={key}, size={len(data)}")
        return StoredObject(url=url, key=key, size=len(data))

    def delete(self, url: str) -> bool:
        self.deleted.append(url)
        return self.objects.pop(url, None) is not None

    def fetch(self, url: str, timeout: float = 30.0) -> bytes:
        try:
            return self.objects[url]
        except KeyError:
            raise StorageError(f"No simulated object at {url}")

    def reset(self) -> None:
        self.objects.clear()
        self.kinds.clear()
        self.deleted.clear()
        logger.info("Simulated storage state reset")
