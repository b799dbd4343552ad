"""
Coverage evaluation for licensing entries.
"""

from datetime import date
from typing import Callable, Optional

from shared.errors import UnparsableValue
from ..models import Record
from .models import LicensingEntry, WallKind


class CoverageEvaluator:
    """Decides whether a licensing entry grants access to a record.

    Checks go from coarse to fine: the volume is only compared when the
    record year sits exactly on a year bound, the issue only when the
    volume also sits on the bound. The moving wall is checked last,
    relative to ``today()``.
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self.today = today or date.today

    def covers(self, record: Record, entry: LicensingEntry) -> bool:
        """Return True, if the entry covers the record.

        Raises UnparsableValue, if a value needed for a comparison cannot
        be parsed.
        """
        if not self._within_lower_bound(record, entry):
            return False
        if not self._within_upper_bound(record, entry):
            return False
        return self._past_wall(record, entry)

    def _within_lower_bound(self, record: Record, entry: LicensingEntry) -> bool:
        if entry.first_year is None:
            return True
        year = record.publication_date().year
        if year < entry.first_year:
            return False
        if year > entry.first_year or entry.first_volume is None:
            return True
        volume = record.volume_number()
        if volume < entry.first_volume:
            return False
        if volume == entry.first_volume and entry.first_issue is not None:
            if record.issue_number() < entry.first_issue:
                return False
        return True

    def _within_upper_bound(self, record: Record, entry: LicensingEntry) -> bool:
        if entry.last_year is None:
            return True
        year = record.publication_date().year
        if year > entry.last_year:
            return False
        if year < entry.last_year or entry.last_volume is None:
            return True
        volume = record.volume_number()
        if volume > entry.last_volume:
            return False
        if volume == entry.last_volume and entry.last_issue is not None:
            if record.issue_number() > entry.last_issue:
                return False
        return True

    def _past_wall(self, record: Record, entry: LicensingEntry) -> bool:
        if not entry.embargo_info:
            return True
        if entry.embargo is None:
            raise UnparsableValue("embargo", entry.embargo_info)
        boundary = entry.embargo.boundary(self.today())
        published = record.publication_date()
        if entry.embargo.kind == WallKind.PAST:
            return published <= boundary
        return published >= boundary
