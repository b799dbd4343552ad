"""
Rule data models for the ISIL Tagger.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from shared.errors import TaggerException


class AttachmentCase(str, Enum):
    """Attachment modes, also used as counter labels."""
    ISSN_ALLOW_LIST = "issn_allow_list"
    HOLDINGS_AND_CONTENT = "holdings+content"
    HOLDINGS_AND_EXTERNAL_CONTENT = "holdings+external_content"
    HOLDINGS = "holdings"
    SUBJECT = "subject"
    EXTERNAL_CONTENT = "external_content"
    CONTENT = "content"
    PLAIN = "plain"


@dataclass(frozen=True)
class ConfigRule:
    """One attachment request: an institution, a source and a collection."""
    isil: str
    source_id: str
    technical_collection_id: str = ""
    mega_collection: str = ""
    link_to_holdings_file: str = ""
    evaluate_holdings_file_for_library: str = ""
    link_to_content_file: str = ""
    external_link_to_content_file: str = ""

    @property
    def evaluate_holdings(self) -> bool:
        return self.evaluate_holdings_file_for_library.strip().lower() == "yes"

    @property
    def skip_holdings(self) -> bool:
        return self.evaluate_holdings_file_for_library.strip().lower() == "no"

    def describe(self) -> dict:
        return {
            "isil": self.isil,
            "sid": self.source_id,
            "tcid": self.technical_collection_id,
            "mc": self.mega_collection,
            "hflink": self.link_to_holdings_file,
            "hfeval": self.evaluate_holdings_file_for_library,
            "cflink": self.link_to_content_file,
            "cfelink": self.external_link_to_content_file,
        }


@dataclass
class RuleError:
    """A failure while evaluating a single rule."""
    rule: ConfigRule
    error: TaggerException


@dataclass
class LabelingResult:
    """Labels for one record, plus the errors of rules that failed."""
    labels: List[str] = field(default_factory=list)
    errors: List[RuleError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
