from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import httpx

from guide.dto import Candidate
from guide.errors import MetadataLookupFailure
from guide.logger import get_logger

logger = get_logger(__name__)


class BlobMetadataStore:
    """Reads user metadata (x-ms-meta-*) of the blob named after an attraction."""

    def __init__(self, container_url: str, sas_token: str = "", client: Optional[httpx.AsyncClient] = None):
        self.container_url = container_url.rstrip("/")
        self.sas_token = sas_token.lstrip("?")
        self._client = client or httpx.AsyncClient(timeout=10.0)

    def blob_url(self, key: str) -> str:
        url = f"{self.container_url}/{quote(key)}"
        if self.sas_token:
            url = f"{url}?{self.sas_token}"
        return url

    async def get_metadata(self, key: str) -> dict:
        if not self.container_url:
            raise MetadataLookupFailure("No metadata container configured")
        try:
            response = await self._client.head(self.blob_url(key))
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise MetadataLookupFailure(f"Metadata lookup for '{key}' failed: {e}") from e

        prefix = "x-ms-meta-"
        return {
            name[len(prefix):].lower(): value
            for name, value in response.headers.items()
            if name.lower().startswith(prefix)
        }

    async def aclose(self):
        await self._client.aclose()


class ImageResolver:
    def __init__(self, store, url_field: str = "imageurl"):
        self.store = store
        self.url_field = url_field.lower()

    async def resolve_image_url(self, candidate: Optional[Candidate]) -> Optional[str]:
        if candidate is None:
            return None
        try:
            metadata = await self.store.get_metadata(candidate.title)
        except Exception as e:
            logger.warning(f"No image for '{candidate.title}': {e}")
            return None
        return metadata.get(self.url_field) or None
