"""
ISSN allow-list cache.
"""

import asyncio
import hashlib
from pathlib import Path
from typing import FrozenSet, Iterable, Union

from shared.config import TaggerSettings
from shared.errors import DownloadError
from shared.logging import get_logger
from .downloader import Downloader, is_remote
from .singleflight import SingleFlightCache


def set_from_lines(lines: Iterable[str]) -> FrozenSet[str]:
    """Build a set from lines, one value per line; blank lines are ignored."""
    return frozenset(line.strip() for line in lines if line.strip())


def load_string_set(path: Union[str, Path]) -> FrozenSet[str]:
    with open(path, encoding="utf-8") as handle:
        return set_from_lines(handle)


class AllowListCache:
    """Allow-lists of ISSN, loaded once per reference."""

    def __init__(self, settings: TaggerSettings, downloader: Downloader):
        self.logger = get_logger("tagger.cache.allow_list")
        self.cache_dir = Path(settings.cache_dir)
        self.force_refresh = settings.force_refresh
        self.downloader = downloader
        self._lists: SingleFlightCache[FrozenSet[str]] = SingleFlightCache("allow_list")

    async def get(self, link: str) -> FrozenSet[str]:
        return await self._lists.get_or_populate(link, lambda: self._load(link))

    async def _load(self, link: str) -> FrozenSet[str]:
        if is_remote(link):
            filename = self.cache_dir / hashlib.sha1(link.encode("utf-8")).hexdigest()
            if not filename.exists() or self.force_refresh:
                await self.downloader.download(link, filename)
        else:
            filename = Path(link)
            if not filename.is_file():
                raise DownloadError(link, "no such file")
        values = await asyncio.to_thread(load_string_set, filename)
        self.logger.info("Loaded allow-list", link=link, size=len(values))
        return values

    async def contains_any(self, link: str, values: Iterable[str]) -> bool:
        allowed = await self.get(link)
        return any(value in allowed for value in values)

    async def close(self):
        await self._lists.close()
