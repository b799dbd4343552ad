"""
Newline-delimited JSON stream processing.
"""

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, TextIO

from pydantic import ValidationError

from shared.config import TaggerSettings
from shared.errors import ParseError
from shared.logging import get_logger, set_record_id
from shared.metrics import MetricsCollector
from .models import Record


Tagger = Callable[[Record], Awaitable[Record]]


@dataclass
class RunSummary:
    """Outcome of one run over a stream."""
    records: int = 0
    labeled: int = 0
    elapsed_seconds: float = 0.0
    cases: Dict[str, int] = field(default_factory=dict)

    @property
    def records_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.records / self.elapsed_seconds


def parse_record(line: str, lineno: int) -> Record:
    """Parse one input line, raising ParseError with the line number."""
    try:
        return Record.model_validate_json(line)
    except ValidationError as e:
        raise ParseError(
            f"malformed record on line {lineno}",
            details={"line": lineno, "error": str(e)}
        ) from e


def _read_batch(reader: TextIO, size: int) -> List[str]:
    return list(itertools.islice(reader, size))


def format_record(record: Record, debug: bool = False) -> str:
    if debug:
        return f"{record.id}\t{', '.join(record.labels)}"
    return record.to_json()


class StreamProcessor:
    """Reads records, tags them concurrently and writes them in input order.

    Records are read in batches of ``batch_size``; within a batch at most
    ``workers`` records are evaluated at the same time, all sharing the
    caches of one tagger.
    """

    def __init__(self,
                 tagger: Tagger,
                 settings: TaggerSettings,
                 debug: bool = False,
                 metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("tagger.stream")
        self.tagger = tagger
        self.settings = settings
        self.debug = debug
        self.metrics = metrics

    async def run(self, reader: TextIO, writer: TextIO) -> RunSummary:
        summary = RunSummary()
        started = time.time()
        semaphore = asyncio.Semaphore(max(1, self.settings.workers))
        batch_size = max(1, self.settings.batch_size)
        interval = max(1, self.settings.progress_interval)
        lineno = 0

        async def process(record: Record) -> Record:
            async with semaphore:
                set_record_id(record.id)
                return await self.tagger(record)

        while True:
            # Reading may block on a stalled pipe; keep the loop free for the run timeout.
            lines = await asyncio.to_thread(_read_batch, reader, batch_size)
            if not lines:
                break
            records: List[Record] = []
            for line in lines:
                lineno += 1
                if not line.strip():
                    continue
                records.append(parse_record(line, lineno))

            tagged = await asyncio.gather(*(process(record) for record in records))

            for record in tagged:
                writer.write(format_record(record, debug=self.debug))
                writer.write("\n")
                summary.records += 1
                if record.labels:
                    summary.labeled += 1
                if self.metrics:
                    self.metrics.increment_counter(
                        "records_total",
                        outcome="labeled" if record.labels else "unlabeled"
                    )
                if summary.records % interval == 0:
                    elapsed = time.time() - started
                    self.logger.info(
                        "Progress",
                        records=summary.records,
                        records_per_second=round(summary.records / max(elapsed, 1e-9), 2)
                    )

        writer.flush()
        summary.elapsed_seconds = time.time() - started
        if self.metrics:
            summary.cases = self.metrics.counter_values("attachments_total", "case")
        return summary
