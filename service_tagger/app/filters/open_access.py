"""
Open access flagging by ISSN list.
"""

from typing import Iterable

from ..models import Record


class OpenAccessFlagger:
    """Marks records as open access, if one of their ISSN is listed."""

    def __init__(self, issns: Iterable[str]):
        self.issns = frozenset(v.strip() for v in issns if v.strip())

    def flag(self, record: Record) -> Record:
        if any(issn in self.issns for issn in record.issn_list()):
            record.open_access = True
        return record
