"""
Filter configuration loading.

A configuration maps each institution to a list of filters, each a single
key mapping naming the filter kind:

    DE-15:
      - source: "49"
      - issn: {file: issns.txt}
      - holdings: {file: kbart.tsv}
    DE-14:
      - any: {}
      - subject: {list: [Music]}

Values for ``issn``, ``collection`` and ``subject`` come from ``list`` or
from ``file`` (one value per line). Relative files are resolved against
the directory of the configuration file. JSON files work as well.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from shared.errors import ConfigError
from shared.logging import get_logger
from ..cache.allow_list import load_string_set
from ..licensing.coverage import CoverageEvaluator
from .predicates import (
    AnyFilter, CollectionFilter, Filter, HoldingsFilter, ListFilter,
    SourceFilter, SubjectFilter,
)
from .tagger import FilterTagger


logger = get_logger("tagger.filters.loader")


def _values(kind: str, options: Any, base: Path) -> List[str]:
    if isinstance(options, list):
        return [str(v) for v in options]
    if not isinstance(options, dict):
        raise ConfigError(f"{kind}: expected a list or a mapping with 'list' or 'file'")
    if "list" in options:
        return [str(v) for v in options["list"] or []]
    if "file" in options:
        return sorted(load_string_set(base / options["file"]))
    raise ConfigError(f"{kind}: expected 'list' or 'file'")


class FilterFactory:
    """Builds filters from configuration fragments."""

    def __init__(self, base: Path, evaluator: Optional[CoverageEvaluator] = None):
        self.base = base
        self.evaluator = evaluator or CoverageEvaluator()
        self.builders: Dict[str, Callable[[Any], Filter]] = {
            "any": lambda options: AnyFilter(),
            "source": self._source,
            "issn": lambda options: ListFilter(_values("issn", options, self.base)),
            "collection": lambda options: CollectionFilter(_values("collection", options, self.base)),
            "subject": lambda options: SubjectFilter(_values("subject", options, self.base)),
            "holdings": self._holdings,
        }

    def build(self, fragment: Any) -> Filter:
        if not isinstance(fragment, dict) or len(fragment) != 1:
            raise ConfigError(f"filter must be a mapping with a single key: {fragment!r}")
        kind, options = next(iter(fragment.items()))
        builder = self.builders.get(kind)
        if builder is None:
            raise ConfigError(f"unknown filter: {kind}", details={"known": sorted(self.builders)})
        return builder(options)

    def _source(self, options: Any) -> Filter:
        if isinstance(options, dict):
            options = options.get("sid")
        if options is None:
            raise ConfigError("source: a source identifier is required")
        return SourceFilter(str(options))

    def _holdings(self, options: Any) -> Filter:
        if not isinstance(options, dict) or "file" not in options:
            raise ConfigError("holdings: expected a mapping with 'file'")
        path = self.base / options["file"]
        try:
            f = HoldingsFilter.from_file(path, evaluator=self.evaluator)
        except OSError as e:
            raise ConfigError(f"holdings: cannot read {path}: {e}") from e
        if len(f.holdings) == 0:
            logger.warning("Holdings file may not be KBART", path=str(path))
        return f


def build_tagger(config: Dict[str, Any], base: Union[str, Path] = ".",
                 evaluator: Optional[CoverageEvaluator] = None) -> FilterTagger:
    """Build a tagger from a parsed configuration mapping."""
    if not isinstance(config, dict):
        raise ConfigError("filter configuration must map institutions to filter lists")
    factory = FilterFactory(Path(base), evaluator=evaluator)
    filters: Dict[str, List[Filter]] = {}
    for isil, fragments in config.items():
        if not isinstance(fragments, list):
            raise ConfigError(f"{isil}: expected a list of filters")
        filters[str(isil)] = [factory.build(fragment) for fragment in fragments]
    logger.info("Loaded filter configuration", institutions=len(filters))
    return FilterTagger(filters)


def load_filter_config(path: Union[str, Path], evaluator: Optional[CoverageEvaluator] = None) -> FilterTagger:
    """Load a tagger from a YAML or JSON file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid filter configuration {path}: {e}") from e
    return build_tagger(config or {}, base=path.parent, evaluator=evaluator)
