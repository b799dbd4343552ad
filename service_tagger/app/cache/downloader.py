"""
Holdings file downloads.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from shared.errors import DownloadError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, retry_async


def is_remote(link: str) -> bool:
    """Return True for links that need to be fetched over HTTP."""
    return link.startswith(("http://", "https://"))


class Downloader:
    """Fetches links into files, with bounded retry and atomic writes.

    A file only ever appears under its final name once it has been written
    completely; partial downloads live in a temporary file next to it.
    """

    def __init__(self,
                 retry_config: Optional[RetryConfig] = None,
                 timeout: float = 60.0,
                 client: Optional[httpx.AsyncClient] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("tagger.cache.downloader")
        self.retry_config = retry_config or RetryConfig(max_attempts=5, base_delay=1.0, max_delay=30.0)
        self.timeout = timeout
        self.metrics = metrics
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def download(self, link: str, filename: Path) -> Path:
        """Download link and save it atomically as filename."""
        filename.parent.mkdir(parents=True, exist_ok=True)
        try:
            await retry_async(
                self._fetch,
                link,
                filename,
                exceptions=(httpx.HTTPError, OSError),
                config=self.retry_config
            )
        except RetryError as e:
            self._record("failed")
            raise DownloadError(
                link,
                str(e.last_exception),
                details={"attempts": e.attempts}
            ) from e
        self._record("ok")
        self.logger.info("Downloaded holdings file", link=link, filename=str(filename))
        return filename

    async def _fetch(self, link: str, filename: Path):
        fd, tmp = tempfile.mkstemp(dir=filename.parent, prefix=f".{filename.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                async with self.client.stream("GET", link) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes():
                        handle.write(chunk)
            os.replace(tmp, filename)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    def _record(self, status: str):
        if self.metrics:
            self.metrics.increment_counter("holdings_downloads_total", status=status)
