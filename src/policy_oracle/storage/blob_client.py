import logging

import httpx
from typing import Dict, Optional
from urllib.parse import quote
from ..config import settings
from ..core.errors import StorageError

logger = logging.getLogger("oracle.storage")


class BlobStoreClient:
    """
    Read-only client for the object store holding uploaded PDFs.

    Speaks the Supabase Storage REST API:
    ``GET {storage_url}/object/{bucket}/{path}``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or str(settings.storage_url)).rstrip("/")
        self.service_key = service_key or settings.storage_service_key.get_secret_value()
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.storage_timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    async def download(self, path: str) -> bytes:
        """
        Fetch the raw bytes stored at `path`.

        Raises
        ------
        StorageError
            On any transport failure, timeout, or non-2xx response.
        """
        url = f"{self.base_url}/object/{self.bucket}/{quote(path.lstrip('/'), safe='/')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "Blob download failed (%s) for %s: %s",
                type(exc).__name__,
                path,
                str(exc),
            )
            raise StorageError("Failed to download file") from exc

        return resp.content
