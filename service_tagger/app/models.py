"""
Record model for the intermediate schema.
"""

import re
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.errors import UnparsableValue


DATE_LAYOUTS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m",
    "%Y",
)

_LEADING_YEAR = re.compile(r"^\s*(\d{4})")


def parse_date(value: str) -> date:
    """Parse a free-text publication date.

    Raises ValueError, if no layout matches and the value does not start
    with a four digit year.
    """
    value = value.strip()
    for layout in DATE_LAYOUTS:
        try:
            return datetime.strptime(value, layout).date()
        except ValueError:
            continue
    match = _LEADING_YEAR.match(value)
    if match:
        return date(int(match.group(1)), 1, 1)
    raise ValueError(f"unparsable date: {value!r}")


def parse_int(field: str, value: str) -> int:
    """Parse a volume or issue string, raising UnparsableValue."""
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        raise UnparsableValue(field, value)


class Record(BaseModel):
    """A bibliographic record.

    Only the fields needed for tagging are modelled; every other key of the
    input document is kept and written back unchanged. Modelled fields are
    written back normalized: numbers and null in scalar fields become
    strings, a single string in a list field becomes a one element list.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(default="", alias="finc.id")
    source_id: str = Field(default="", alias="finc.source_id")
    mega_collections: List[str] = Field(default_factory=list, alias="finc.mega_collection")
    issn: List[str] = Field(default_factory=list, alias="rft.issn")
    eissn: List[str] = Field(default_factory=list, alias="rft.eissn")
    raw_date: str = Field(default="", alias="rft.date")
    x_date: str = Field(default="", alias="x.date")
    volume: str = Field(default="", alias="rft.volume")
    issue: str = Field(default="", alias="rft.issue")
    subjects: List[str] = Field(default_factory=list, alias="x.subjects")
    labels: List[str] = Field(default_factory=list, alias="x.labels")
    open_access: Optional[bool] = Field(default=None, alias="x.oa")

    @field_validator("mega_collections", "issn", "eissn", "subjects", "labels", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("id", "source_id", "raw_date", "x_date", "volume", "issue", mode="before")
    @classmethod
    def _to_string(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def issn_list(self) -> List[str]:
        """Return the trimmed, de-duplicated print and electronic ISSN."""
        seen = []
        for value in self.issn + self.eissn:
            value = value.strip()
            if value and value not in seen:
                seen.append(value)
        return seen

    def publication_date(self) -> date:
        """Return the parsed publication date, preferring rft.date over x.date."""
        value = self.raw_date or self.x_date
        try:
            return parse_date(value)
        except ValueError:
            raise UnparsableValue("date", value)

    def volume_number(self) -> int:
        return parse_int("volume", self.volume)

    def issue_number(self) -> int:
        return parse_int("issue", self.issue)

    def to_json(self) -> str:
        """Serialize with the original key names."""
        return self.model_dump_json(by_alias=True, exclude_unset=True)
