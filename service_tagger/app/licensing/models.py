"""
Licensing data models.
"""

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterator, List, Optional

from shared.errors import ParseError


class WallKind(str, Enum):
    """Direction of a moving wall."""
    PAST = "P"      # content older than the wall is available
    RECENT = "R"    # only content newer than the wall is available


_EMBARGO = re.compile(r"^([PR])(\d+)([DMY])$")


def _subtract_months(value: date, months: int) -> date:
    total = value.year * 12 + (value.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


@dataclass(frozen=True)
class Embargo:
    """A KBART moving wall, e.g. P1Y or R6M."""
    kind: WallKind
    amount: int
    unit: str

    @classmethod
    def parse(cls, value: str) -> Optional["Embargo"]:
        """Parse embargo info; empty values mean no embargo."""
        value = value.strip().upper()
        if not value:
            return None
        match = _EMBARGO.match(value)
        if not match:
            raise ParseError(f"invalid embargo: {value!r}", details={"embargo": value})
        kind, amount, unit = match.groups()
        return cls(kind=WallKind(kind), amount=int(amount), unit=unit)

    def boundary(self, now: date) -> date:
        """Return the wall date relative to now."""
        if self.unit == "D":
            return now - timedelta(days=self.amount)
        if self.unit == "M":
            return _subtract_months(now, self.amount)
        return _subtract_months(now, 12 * self.amount)

    def __str__(self) -> str:
        return f"{self.kind.value}{self.amount}{self.unit}"


@dataclass(frozen=True)
class LicensingEntry:
    """One row of a KBART holdings file.

    Bounds of None are unconstrained.
    """
    publication_title: str = ""
    print_identifier: str = ""
    online_identifier: str = ""
    first_year: Optional[int] = None
    first_volume: Optional[int] = None
    first_issue: Optional[int] = None
    last_year: Optional[int] = None
    last_volume: Optional[int] = None
    last_issue: Optional[int] = None
    embargo_info: str = ""
    embargo: Optional[Embargo] = None
    title_url: str = ""
    coverage_notes: str = ""

    def issns(self) -> List[str]:
        """Return the non-empty serial numbers of this entry."""
        result = []
        for value in (self.print_identifier, self.online_identifier):
            value = value.strip()
            if value and value not in result:
                result.append(value)
        return result


@dataclass
class Holdings:
    """Licensing entries of one holdings file, indexed by ISSN."""
    entries: List[LicensingEntry] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    _index: Dict[str, List[LicensingEntry]] = field(default_factory=dict, repr=False)

    def add(self, entry: LicensingEntry):
        self.entries.append(entry)
        for issn in entry.issns():
            self._index.setdefault(issn, []).append(entry)

    def extend(self, other: "Holdings"):
        for entry in other.entries:
            self.add(entry)
        self.errors.extend(other.errors)

    def by_issn(self, issn: str) -> List[LicensingEntry]:
        """Return all entries for an ISSN, in file order."""
        return self._index.get(issn.strip(), [])

    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[LicensingEntry]:
        return iter(self.entries)
