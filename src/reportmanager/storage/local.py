"""LocalStorage: export files on the local filesystem under a root directory."""

import logging
from pathlib import Path
from typing import Optional

from reportmanager.exceptions import StorageError
from reportmanager.storage.base import ExportStorage

logger = logging.getLogger(__name__)


class LocalStorage(ExportStorage):
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    def path_for(self, filename: str) -> str:
        return str(self._resolve(filename))

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        candidate = candidate.resolve()
        if not candidate.is_relative_to(self._root):
            raise StorageError(f"Path escapes export directory: {path}")
        return candidate

    async def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {target}: {e}") from e

    async def read(self, path: str) -> Optional[bytes]:
        target = self._resolve(path)
        if not target.is_file():
            return None
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {target}: {e}") from e

    async def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    async def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        try:
            target.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {target}: {e}") from e
        return True
