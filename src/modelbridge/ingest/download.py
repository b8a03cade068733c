"""
HTTP downloader for remote model sources.

One aiohttp session per downloader, created lazily and closed explicitly.
"""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from modelbridge.config import DEFAULT_DOWNLOAD_TIMEOUT_S, DEFAULT_MAX_DOWNLOAD_BYTES
from modelbridge.errors import DownloadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class Downloader(Protocol):
    async def fetch(self, url: str) -> bytes: ...


class HttpDownloader:
    """Fetches a URL body into memory.

    Any non-2xx status, connection failure or body read failure raises
    DownloadError; nothing is written to disk here.
    """

    def __init__(
        self,
        timeout_s: float = DEFAULT_DOWNLOAD_TIMEOUT_S,
        max_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES,
    ) -> None:
        self._timeout_s = timeout_s
        self._max_bytes = max_bytes
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def fetch(self, url: str) -> bytes:
        """Download ``url`` and return the body.

        Raises:
            DownloadError: On connection errors, non-2xx status, oversized or
                unreadable bodies.
        """
        try:
            session = await self._get_session()
            async with session.get(url) as resp:
                status = resp.status
                if not 200 <= status < 300:
                    logger.warning("Download failed", extra={"url": url, "status": status})
                    raise DownloadError(
                        f"failed to download file, status code: {status}", status=status
                    )
                body = bytearray()
                async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                    body.extend(chunk)
                    if len(body) > self._max_bytes:
                        raise DownloadError(
                            f"downloaded file exceeds {self._max_bytes} bytes", status=status
                        )
        except aiohttp.ClientError as e:
            logger.warning("Download connection error", extra={"url": url, "error": str(e)})
            raise DownloadError(f"error downloading file from URL: {e}", cause=e) from e
        except TimeoutError as e:
            raise DownloadError("timed out downloading file from URL", cause=e) from e

        logger.info("Downloaded file", extra={"url": url, "size_bytes": len(body)})
        return bytes(body)

    async def close(self) -> None:
        """Close aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
