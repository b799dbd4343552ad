"""
Command line entry points for the ISIL Tagger.

    $ isil-tagger --db amsl.db < records.ndj > tagged.ndj
    $ isil-filter-tagger --config filters.yaml < records.ndj > tagged.ndj
    $ isil-oa-filter -f oa-issns.txt < records.ndj > flagged.ndj

Records go to standard output, logs and diagnostics to standard error.
"""

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import List, Optional, TextIO

from shared.config import TaggerSettings, get_settings
from shared.errors import TaggerException
from shared.logging import configure_logging, get_logger, set_run_id
from shared.metrics import get_metrics_collector
from . import __version__
from .cache.allow_list import load_string_set
from .filters.loader import load_filter_config
from .filters.open_access import OpenAccessFlagger
from .models import Record
from .rules.engine import AttachmentRuleEngine
from .stream import RunSummary, StreamProcessor, Tagger


logger = get_logger("tagger.main")


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("-v", "--version", action="store_true", help="Print version and exit")
    parser.add_argument("--debug", action="store_true", help="Only output id and attached ISIL, tab separated")
    parser.add_argument("--workers", type=int, default=None, help="Records evaluated concurrently")
    parser.add_argument("--batch-size", type=int, default=None, help="Records read per batch")
    parser.add_argument("--log-level", default=None, help="Log level (debug, info, warning, error)")
    parser.add_argument("--timeout", type=float, default=None, help="Abort the run after this many seconds")


def _settings(args: argparse.Namespace, **extra) -> TaggerSettings:
    return get_settings(
        workers=args.workers,
        batch_size=args.batch_size,
        log_level=args.log_level,
        run_timeout=args.timeout,
        **extra
    )


async def _run_stream(tagger: Tagger,
                      settings: TaggerSettings,
                      reader: TextIO,
                      writer: TextIO,
                      debug: bool = False,
                      metrics=None) -> RunSummary:
    processor = StreamProcessor(tagger, settings, debug=debug, metrics=metrics)
    return await asyncio.wait_for(processor.run(reader, writer), timeout=settings.run_timeout)


async def run_tagger(settings: TaggerSettings,
                     db: Path,
                     reader: TextIO,
                     writer: TextIO,
                     debug: bool = False) -> RunSummary:
    """Tag a stream with the configuration store driven engine."""
    engine = AttachmentRuleEngine.create(settings, db=db)
    try:
        return await _run_stream(engine.tag, settings, reader, writer, debug=debug, metrics=engine.metrics)
    finally:
        await engine.close()


async def run_filter_tagger(settings: TaggerSettings,
                            config: Path,
                            reader: TextIO,
                            writer: TextIO,
                            debug: bool = False) -> RunSummary:
    """Tag a stream with a filter configuration."""
    tagger = load_filter_config(config)

    async def tag(record: Record) -> Record:
        return tagger.tag(record)

    return await _run_stream(tag, settings, reader, writer, debug=debug, metrics=get_metrics_collector("tagger"))


async def run_oa_filter(settings: TaggerSettings, issn_file: Path, reader: TextIO, writer: TextIO) -> RunSummary:
    """Flag open access records by ISSN list."""
    flagger = OpenAccessFlagger(load_string_set(issn_file))

    async def flag(record: Record) -> Record:
        return flagger.flag(record)

    return await _run_stream(flag, settings, reader, writer)


def _execute(name: str, coro) -> int:
    try:
        summary = asyncio.run(coro)
    except KeyboardInterrupt:
        return 130
    except TaggerException as e:
        logger.error("Run failed", **e.to_response().model_dump())
        print(f"[{name}] {e.code}: {e.message}", file=sys.stderr)
        return 1
    except asyncio.TimeoutError:
        logger.error("Run timed out")
        print(f"[{name}] run timed out", file=sys.stderr)
        return 1
    except OSError as e:
        logger.error("Run failed", error=str(e))
        print(f"[{name}] {e}", file=sys.stderr)
        return 1

    logger.info(
        "Run finished",
        records=summary.records,
        labeled=summary.labeled,
        elapsed_seconds=round(summary.elapsed_seconds, 2),
        records_per_second=round(summary.records_per_second, 2)
    )
    for case, count in sorted(summary.cases.items()):
        logger.info("Attachment case", case=case, count=count)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="isil-tagger",
        description="Attach institution identifiers (ISIL) to newline delimited JSON records."
    )
    parser.add_argument("--db", type=Path, default=None, help="Path to the SQLite configuration database")
    parser.add_argument("-f", "--force", action="store_true", help="Download all referenced holdings files again")
    parser.add_argument("--cache-dir", type=Path, default=None, help="Holdings file cache directory")
    parser.add_argument("--download-error-policy", choices=["fail", "skip"], default=None,
                        help="Fail the run or skip the rule when a holdings file cannot be fetched")
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0
    if args.db is None:
        parser.error("we need a configuration database (--db)")

    settings = _settings(
        args,
        force_refresh=args.force or None,
        cache_dir=args.cache_dir,
        download_error_policy=args.download_error_policy
    )
    configure_logging("tagger", settings.log_level)
    set_run_id(uuid.uuid4().hex)
    return _execute("isil-tagger", run_tagger(settings, args.db, sys.stdin, sys.stdout, debug=args.debug))


def filter_main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="isil-filter-tagger",
        description="Attach institution identifiers (ISIL) to records using a filter configuration."
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a YAML or JSON filter configuration")
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0
    if args.config is None:
        parser.error("a filter configuration is required (--config)")

    settings = _settings(args)
    configure_logging("tagger", settings.log_level)
    set_run_id(uuid.uuid4().hex)
    return _execute("isil-filter-tagger", run_filter_tagger(settings, args.config, sys.stdin, sys.stdout, debug=args.debug))


def oa_main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="isil-oa-filter",
        description="Set x.oa on records whose ISSN is in a given list."
    )
    parser.add_argument("-f", "--file", type=Path, default=None, help="Path to a file with one ISSN per line")
    parser.add_argument("-v", "--version", action="store_true", help="Print version and exit")
    parser.add_argument("--log-level", default=None, help="Log level")
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return 0
    if args.file is None:
        parser.error("an ISSN file is required (-f)")

    settings = get_settings(log_level=args.log_level)
    configure_logging("tagger", settings.log_level)
    return _execute("isil-oa-filter", run_oa_filter(settings, args.file, sys.stdin, sys.stdout))


if __name__ == "__main__":
    raise SystemExit(main())
