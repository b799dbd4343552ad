"""
Record predicates for the filter tagger.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from shared.errors import UnparsableValue
from ..licensing.coverage import CoverageEvaluator
from ..licensing.kbart import read_holdings_file
from ..licensing.models import Holdings
from ..models import Record


class Filter(ABC):
    """Decides whether an institution should be attached to a record."""

    @abstractmethod
    def apply(self, record: Record) -> bool:
        ...


class AnyFilter(Filter):
    """Always matches."""

    def apply(self, record: Record) -> bool:
        return True


class SourceFilter(Filter):
    """Matches records of a given source."""

    def __init__(self, source_id: str):
        self.source_id = source_id

    def apply(self, record: Record) -> bool:
        return record.source_id == self.source_id


class ListFilter(Filter):
    """Matches records with an ISSN or EISSN in a given set."""

    def __init__(self, values: Iterable[str]):
        self.values = frozenset(v.strip() for v in values if v.strip())

    def apply(self, record: Record) -> bool:
        return any(issn in self.values for issn in record.issn_list())


class CollectionFilter(Filter):
    """Matches records belonging to one of the named collections."""

    def __init__(self, names: Iterable[str]):
        self.names = frozenset(names)

    def apply(self, record: Record) -> bool:
        return any(name in self.names for name in record.mega_collections)


class SubjectFilter(Filter):
    """Matches records with an exact subject match."""

    def __init__(self, subjects: Iterable[str]):
        self.subjects = frozenset(subjects)

    def apply(self, record: Record) -> bool:
        return any(subject in self.subjects for subject in record.subjects)


class HoldingsFilter(Filter):
    """Matches records covered by a holdings table, moving walls included."""

    def __init__(self, holdings: Holdings, evaluator: Optional[CoverageEvaluator] = None):
        self.holdings = holdings
        self.evaluator = evaluator or CoverageEvaluator()

    @classmethod
    def from_file(cls, path, evaluator: Optional[CoverageEvaluator] = None) -> "HoldingsFilter":
        return cls(read_holdings_file(path), evaluator=evaluator)

    def apply(self, record: Record) -> bool:
        for issn in record.issn_list():
            for entry in self.holdings.by_issn(issn):
                try:
                    if self.evaluator.covers(record, entry):
                        return True
                except UnparsableValue:
                    continue
        return False
