"""
Attachment rule engine for the ISIL Tagger.
"""

from datetime import date
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple, Union

import httpx

from shared.config import TaggerSettings
from shared.errors import ConfigContradiction, ConfigError, DownloadError, NoMatchingCase, ParseError
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from shared.retry import RetryConfig
from ..cache.allow_list import AllowListCache
from ..cache.downloader import Downloader
from ..cache.holdings import HoldingsFileCache
from ..licensing.coverage import CoverageEvaluator
from ..models import Record
from ..persistence.sqlite import ConfigStore, SQLiteConfigStore
from .matcher import ConfigMatcher
from .models import AttachmentCase, ConfigRule, LabelingResult, RuleError


MUSIC_SUBJECTS = frozenset(["Music", "Music education"])
FILM_SUBJECTS = frozenset(["Film studies", "Information science", "Mass communication"])

# Subject based attachments for fixed (source, institution) pairs; these
# bypass holdings evaluation.
SUBJECT_OVERRIDES: Dict[Tuple[str, str], FrozenSet[str]] = {
    ("34", "DE-L152"): MUSIC_SUBJECTS,
    ("34", "DE-1156"): MUSIC_SUBJECTS,
    ("34", "DE-1972"): MUSIC_SUBJECTS,
    ("34", "DE-Kn38"): MUSIC_SUBJECTS,
    ("34", "DE-15-FID"): FILM_SUBJECTS,
}


class AttachmentRuleEngine:
    """Decides which institutions to attach to a record.

    Every matching configuration rule is evaluated on its own, the first
    applicable attachment case decides it, and the institutions of all
    attaching rules are merged into a sorted label list. The case order is
    significant: e.g. a rule with holdings and content links is always
    evaluated as an AND of both, never as content only.
    """

    def __init__(self,
                 settings: TaggerSettings,
                 matcher: ConfigMatcher,
                 holdings: HoldingsFileCache,
                 allow_lists: AllowListCache,
                 metrics: Optional[MetricsCollector] = None,
                 subject_overrides: Optional[Dict[Tuple[str, str], FrozenSet[str]]] = None):
        self.logger = get_logger("tagger.rules.engine")
        self.settings = settings
        self.matcher = matcher
        self.holdings = holdings
        self.allow_lists = allow_lists
        self.metrics = metrics
        self.provider_links = dict(settings.provider_links)
        self.allow_list_markers = dict(settings.allow_list_markers)
        self.subject_overrides = SUBJECT_OVERRIDES if subject_overrides is None else subject_overrides

    def links_for(self, rule: ConfigRule) -> List[str]:
        """Return the holdings references to check for a rule.

        Empty links are kept; they are skipped during coverage checks.
        """
        links = [
            rule.link_to_holdings_file,
            rule.link_to_content_file,
            rule.external_link_to_content_file,
        ]
        provider_link = self.provider_links.get(rule.isil)
        if provider_link:
            links.append(provider_link)
        return links

    async def labels(self, record: Record) -> List[str]:
        """Return sorted institution labels, raising the first rule error."""
        result = await self.evaluate(record)
        if result.errors:
            raise result.errors[0].error
        return result.labels

    async def tag(self, record: Record) -> Record:
        """Set the labels of a record in place."""
        record.labels = await self.labels(record)
        return record

    async def evaluate(self, record: Record) -> LabelingResult:
        """Evaluate all matching rules, collecting per-rule errors."""
        rules = await self.matcher.matching_rules(record)
        attached = set()
        errors: List[RuleError] = []
        for rule in rules:
            try:
                case = await self.attachment_case(rule, record)
            except ConfigError as e:
                self.logger.error(
                    "Invalid configuration rule",
                    record_id=record.id,
                    code=e.code,
                    error=e.message,
                    rule=rule.describe()
                )
                errors.append(RuleError(rule=rule, error=e))
                continue
            except (DownloadError, ParseError) as e:
                # Unavailable or unreadable holdings files fall under the same policy.
                if self.settings.download_error_policy == "skip":
                    self.logger.warning("Skipping rule, holdings unavailable", isil=rule.isil, code=e.code, error=e.message)
                    continue
                errors.append(RuleError(rule=rule, error=e))
                continue
            if case is not None:
                attached.add(rule.isil)
                if self.metrics:
                    self.metrics.increment_counter("attachments_total", case=case)
        return LabelingResult(labels=sorted(attached), errors=errors)

    async def attachment_case(self, rule: ConfigRule, record: Record) -> Optional[str]:
        """Return the name of the attaching case, or None, if the rule does not attach."""
        hflink = rule.link_to_holdings_file
        cflink = rule.link_to_content_file
        cfelink = rule.external_link_to_content_file
        links = self.links_for(rule)

        marker = self.allow_list_markers.get(rule.isil)
        if marker and marker in hflink:
            if await self.allow_lists.contains_any(hflink, record.issn_list()):
                return AttachmentCase.ISSN_ALLOW_LIST.value
            return None

        if rule.evaluate_holdings and hflink and cflink:
            if await self.holdings.covered(record, *links):
                return AttachmentCase.HOLDINGS_AND_CONTENT.value
            return None

        if rule.evaluate_holdings and hflink and cfelink:
            if await self.holdings.covered(record, *links):
                return AttachmentCase.HOLDINGS_AND_EXTERNAL_CONTENT.value
            return None

        if rule.evaluate_holdings and hflink:
            if await self.holdings.covered(record, *links):
                return AttachmentCase.HOLDINGS.value
            return None

        if rule.evaluate_holdings:
            raise ConfigContradiction(
                "no holding file to evaluate",
                details=rule.describe()
            )

        if rule.skip_holdings and hflink:
            raise ConfigContradiction(
                "config provides holding file, but does not want to evaluate it",
                details=rule.describe()
            )

        subjects = self.subject_overrides.get((record.source_id, rule.isil))
        if subjects is not None:
            if subjects.intersection(record.subjects):
                return f"{AttachmentCase.SUBJECT.value}:{record.source_id}:{rule.isil}"
            return None

        if cfelink:
            if await self.holdings.covered(record, *links):
                return AttachmentCase.EXTERNAL_CONTENT.value
            return None

        if cflink:
            if await self.holdings.covered(record, *links):
                return AttachmentCase.CONTENT.value
            return None

        if rule.skip_holdings:
            return AttachmentCase.PLAIN.value

        raise NoMatchingCase(
            f"none of the attachment modes match for {record.id}",
            details=rule.describe()
        )

    @classmethod
    def create(cls,
               settings: TaggerSettings,
               store: Optional[ConfigStore] = None,
               db: Optional[Union[str, Path]] = None,
               client: Optional[httpx.AsyncClient] = None,
               today: Optional[Callable[[], date]] = None) -> "AttachmentRuleEngine":
        """Wire an engine and its caches from settings.

        Either a store or the path to an SQLite configuration database is
        required.
        """
        if store is None:
            if db is None:
                raise ConfigError("we need a configuration database")
            store = SQLiteConfigStore(db)
        metrics = get_metrics_collector("tagger")
        downloader = Downloader(
            retry_config=RetryConfig(
                max_attempts=settings.download_max_attempts,
                base_delay=settings.download_base_delay,
                max_delay=settings.download_max_delay
            ),
            timeout=settings.download_timeout,
            client=client,
            metrics=metrics
        )
        return cls(
            settings=settings,
            matcher=ConfigMatcher(store, metrics=metrics),
            holdings=HoldingsFileCache(settings, downloader, CoverageEvaluator(today=today), metrics=metrics),
            allow_lists=AllowListCache(settings, downloader),
            metrics=metrics
        )

    async def close(self):
        """Cancel in-flight cache populations and release connections."""
        await self.matcher.close()
        await self.holdings.close()
        await self.allow_lists.close()
        await self.holdings.downloader.close()
        close_store = getattr(self.matcher.store, "close", None)
        if close_store is not None:
            close_store()
