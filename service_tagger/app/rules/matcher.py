"""
Configuration matching for records.
"""

import asyncio
from typing import List, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..cache.singleflight import SingleFlightCache
from ..models import Record
from ..persistence.sqlite import ConfigStore
from .models import ConfigRule


def cache_key(record: Record) -> str:
    """Return a key for the subset of a record that determines its rules.

    Collections are sorted, so the same set in a different order maps to
    the same key.
    """
    return "@".join([record.source_id, *sorted(record.mega_collections)])


class ConfigMatcher:
    """Finds configuration rules for records, memoized by source and collections."""

    def __init__(self, store: ConfigStore, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("tagger.rules.matcher")
        self.store = store
        self.metrics = metrics
        self._rules: SingleFlightCache[List[ConfigRule]] = SingleFlightCache("config_rules")

    async def matching_rules(self, record: Record) -> List[ConfigRule]:
        """Return the rules whose source and collection match the record."""
        if not record.mega_collections:
            # Nothing to match against; not the same as a source without rules.
            self._record("no_collections")
            self.logger.debug("Record has no collections", record_id=record.id, sid=record.source_id)
            return []
        key = cache_key(record)
        if key in self._rules:
            self._record("hit")
        collections = sorted(set(record.mega_collections))
        return await self._rules.get_or_populate(
            key,
            lambda: self._query(record.source_id, collections)
        )

    async def _query(self, source_id: str, collections: List[str]) -> List[ConfigRule]:
        self._record("query")
        rules = await asyncio.to_thread(self.store.rules_for, source_id, collections)
        self.logger.debug("Queried configuration", sid=source_id, collections=collections, rules=len(rules))
        return rules

    def _record(self, result: str):
        if self.metrics:
            self.metrics.increment_counter("config_queries_total", result=result)

    async def close(self):
        await self._rules.close()
