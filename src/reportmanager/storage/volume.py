"""VolumeStorage: export files on a remote object-store volume over HTTP.

Objects live under ``{base_url}/{sub_path}/``; paths persisted on exports are
relative to the volume root (``report-manager/exports/<file>``).
"""

import logging
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from reportmanager.exceptions import StorageError
from reportmanager.storage.base import ExportStorage

logger = logging.getLogger(__name__)

DEFAULT_SUB_PATH = "report-manager/exports"


class VolumeStorage(ExportStorage):
    def __init__(
        self,
        base_url: str,
        sub_path: str = DEFAULT_SUB_PATH,
        token: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._sub_path = sub_path.strip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout
        )

    def path_for(self, filename: str) -> str:
        return f"{self._sub_path}/{filename}"

    def _url(self, path: str) -> str:
        path = path.lstrip("/")
        if ".." in path.split("/"):
            raise StorageError(f"Invalid storage path: {path}")
        return f"/{path}"

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _request(self, method: str, path: str, content: bytes | None = None) -> httpx.Response:
        return await self._client.request(method, self._url(path), content=content)

    async def write(self, path: str, data: bytes) -> None:
        try:
            resp = await self._request("PUT", path, content=data)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to write {path} to volume: {e}") from e

    async def read(self, path: str) -> Optional[bytes]:
        try:
            resp = await self._request("GET", path)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to read {path} from volume: {e}") from e
        return resp.content

    async def exists(self, path: str) -> bool:
        try:
            resp = await self._request("HEAD", path)
            if resp.status_code == 404:
                return False
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to stat {path} on volume: {e}") from e
        return True

    async def delete(self, path: str) -> bool:
        try:
            resp = await self._request("DELETE", path)
            if resp.status_code == 404:
                return False
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to delete {path} from volume: {e}") from e
        return True

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "VolumeStorage":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
