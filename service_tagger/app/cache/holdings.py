"""
Holdings file cache.
"""

import asyncio
import hashlib
import time
from pathlib import Path
from typing import Optional

from shared.config import TaggerSettings
from shared.errors import ConfigError, DownloadError, UnparsableValue
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..licensing.coverage import CoverageEvaluator
from ..licensing.kbart import read_holdings_file
from ..licensing.models import Holdings
from ..models import Record
from .downloader import Downloader, is_remote
from .singleflight import SingleFlightCache


class HoldingsFileCache:
    """Access to holdings files by link or filename.

    Remote files are downloaded once into ``cache_dir`` (named by the SHA-1
    of the link) and reused across runs; ``force_refresh`` downloads them
    again, once per process. Parsed holdings are kept in memory for the
    process lifetime.
    """

    def __init__(self,
                 settings: TaggerSettings,
                 downloader: Downloader,
                 evaluator: Optional[CoverageEvaluator] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("tagger.cache.holdings")
        self.cache_dir = Path(settings.cache_dir)
        self.force_refresh = settings.force_refresh
        self.downloader = downloader
        self.evaluator = evaluator or CoverageEvaluator()
        self.metrics = metrics
        self._entries: SingleFlightCache[Holdings] = SingleFlightCache("holdings")

    def cache_filename(self, link: str) -> Path:
        """Return the path to the locally cached version of a link."""
        return self.cache_dir / hashlib.sha1(link.encode("utf-8")).hexdigest()

    async def populate(self, link: str) -> Holdings:
        """Return parsed holdings for link, loading them on first use."""
        return await self._entries.get_or_populate(link, lambda: self._load(link))

    async def _load(self, link: str) -> Holdings:
        if is_remote(link):
            if self.cache_dir.exists() and not self.cache_dir.is_dir():
                raise ConfigError(f"expected cache directory at: {self.cache_dir}")
            filename = self.cache_filename(link)
            if not filename.exists() or self.force_refresh:
                if self.force_refresh:
                    self.logger.info("Redownloading holdings file", link=link)
                await self.downloader.download(link, filename)
        else:
            filename = Path(link)
            if not filename.is_file():
                raise DownloadError(link, "no such file")

        started = time.time()
        holdings = await asyncio.to_thread(read_holdings_file, filename)
        if self.metrics:
            self.metrics.observe_histogram("holdings_parse_duration_seconds", time.time() - started)

        if len(holdings) == 0:
            self.logger.warning("Holdings file may not be KBART", link=link, filename=str(filename))
        else:
            self.logger.info(
                "Parsed holdings file",
                link=link,
                filename=str(filename),
                serial_numbers=len(holdings),
                entries=len(holdings.entries),
                cached_files=len(self._entries) + 1
            )
        return holdings

    async def covers(self, link: str, record: Record) -> bool:
        """Return True, if the holdings file covers the record."""
        holdings = await self.populate(link)
        for issn in record.issn_list():
            for entry in holdings.by_issn(issn):
                try:
                    if self.evaluator.covers(record, entry):
                        return True
                except UnparsableValue as e:
                    self.logger.debug("Entry skipped", link=link, issn=issn, error=e.message)
        return False

    async def covered(self, record: Record, *links: str) -> bool:
        """Return True, if every non-empty link covers the record.

        With no non-empty links there is nothing to violate and the result
        is True.
        """
        for link in links:
            if not link:
                continue
            if not await self.covers(link, record):
                return False
        return True

    async def close(self):
        await self._entries.close()
