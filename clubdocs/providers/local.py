import logging
import os
import shutil
from typing import BinaryIO, Optional

from .base import ResourceKind, StorageError, StorageProviderBase, StoredObject

logger = logging.getLogger(__name__)


class LocalStorageProvider(StorageProviderBase):
    """Stores documents on local disk; the returned locator is the file path."""

    def __init__(self, root_dir: str):
        self.root_dir = root_dir

    def _resolve_folder(self, folder: str) -> str:
        # Remote-style prefixes ("club/documents/athlete_3") collapse to the last segment.
        leaf = folder.rstrip("/").rsplit("/", 1)[-1]
        return os.path.join(self.root_dir, leaf)

    def upload(
        self,
        stream: BinaryIO,
        name: str,
        folder: str,
        kind: ResourceKind = ResourceKind.RAW,
        content_type: Optional[str] = None,
    ) -> StoredObject:
        target_dir = self._resolve_folder(folder)
        path = os.path.join(target_dir, os.path.basename(name))
        try:
            os.makedirs(target_dir, exist_ok=True)
            with open(path, "wb") as f:
                shutil.copyfileobj(stream, f)
        except OSError as e:
            logger.error(f"Failed to write document to {path}: {e}")
            raise StorageError(f"failed to save file: {e}") from e

        size = os.path.getsize(path)
        logger.info(f"Saved document locally: path={path}, size={size}")
        return StoredObject(url=path, key=path, size=size)

    def delete(self, url: str) -> bool:
        if not url or url.startswith(("http://", "https://")):
            return False
        try:
            os.remove(url)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not delete local file {url}: {e}")
            return False
