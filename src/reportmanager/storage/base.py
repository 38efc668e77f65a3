"""Abstract storage backend for generated export files."""

from abc import ABC, abstractmethod
from typing import Optional


class ExportStorage(ABC):
    """Narrow read/write/exists/delete capability used by exports and cleanup.

    Paths are opaque strings produced by ``path_for`` and persisted on the
    export record.
    """

    @abstractmethod
    def path_for(self, filename: str) -> str:
        """Storage path for a bare filename."""

    @abstractmethod
    async def write(self, path: str, data: bytes) -> None: ...

    @abstractmethod
    async def read(self, path: str) -> Optional[bytes]:
        """File content, or None when the file does not exist."""

    @abstractmethod
    async def exists(self, path: str) -> bool: ...

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Remove the file; False when it was already absent."""
