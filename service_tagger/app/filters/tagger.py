"""
Filter tagger.
"""

from typing import Dict, List

from ..models import Record
from .predicates import Filter


class FilterTagger:
    """Maps institutions to filters; any matching filter attaches the institution."""

    def __init__(self, filters: Dict[str, List[Filter]]):
        self.filters = filters

    def tags(self, record: Record) -> List[str]:
        """Return the sorted institutions to attach to a record."""
        return sorted(
            isil for isil, filters in self.filters.items()
            if any(f.apply(record) for f in filters)
        )

    def tag(self, record: Record) -> Record:
        record.labels = self.tags(record)
        return record
