"""Media downloads for fetched posts."""

from __future__ import annotations

import re
from pathlib import Path

import httpx
from loguru import logger

from instabridge.utils.exceptions import StorageError

DOWNLOAD_TIMEOUT_SECONDS = 30.0
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.114 Safari/537.36"
)

_POST_ID_RE = re.compile(r"/(?:p|reel)/([^/?#]+)")


def sanitize_filename(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE).lower()


def post_id_from_url(url: str) -> str:
    match = _POST_ID_RE.search(url)
    return match.group(1) if match else ""


class MediaDownloader:
    """Downloads media files with a shared httpx client."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = DOWNLOAD_TIMEOUT_SECONDS):
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    async def download(self, url: str, save_path: Path) -> Path:
        """Fetch ``url`` and write it to ``save_path`` (parents created)."""
        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create directory {save_path.parent}: {e}", path=str(save_path.parent)) from e

        client = self._get_client()
        try:
            response = await client.get(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download media from {url}: {e}", path=str(save_path)) from e

        try:
            save_path.write_bytes(response.content)
        except OSError as e:
            raise StorageError(f"Failed to save media to {save_path}: {e}", path=str(save_path)) from e
        logger.debug("Saved media {} ({} bytes)", save_path, len(response.content))
        return save_path

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
            self._owns_client = True
        return self._client
