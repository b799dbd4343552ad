"""
KBART holdings file parsing.

KBART files are tab-delimited with a single header line. Columns are
located by header name, so files with extra or reordered columns parse
as well. A file may also be a zip archive bundling several KBART files.
"""

import csv
import io
import re
import zipfile
import zlib
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from shared.errors import ParseError
from shared.logging import get_logger
from .models import Embargo, Holdings, LicensingEntry


logger = get_logger("tagger.licensing.kbart")

_YEAR = re.compile(r"^\s*(\d{4})")

# Coverage notes in provider files can exceed the csv default of 128 KiB.
FIELD_SIZE_LIMIT = 16 * 1024 * 1024

COLUMNS = (
    "publication_title",
    "print_identifier",
    "online_identifier",
    "date_first_issue_online",
    "num_first_vol_online",
    "num_first_issue_online",
    "date_last_issue_online",
    "num_last_vol_online",
    "num_last_issue_online",
    "title_url",
    "embargo_info",
    "coverage_notes",
)


def _year(value: str, column: str) -> Optional[int]:
    value = value.strip()
    if not value:
        return None
    match = _YEAR.match(value)
    if not match:
        raise ParseError(f"invalid {column}: {value!r}", details={"column": column})
    return int(match.group(1)) or None


def _number(value: str, column: str) -> Optional[int]:
    value = value.strip()
    if not value:
        return None
    try:
        return int(value) or None
    except ValueError:
        raise ParseError(f"invalid {column}: {value!r}", details={"column": column})


def entry_from_row(row: Dict[str, str]) -> LicensingEntry:
    """Build a licensing entry from a header-keyed row."""
    embargo_info = row.get("embargo_info", "").strip()
    try:
        embargo = Embargo.parse(embargo_info)
    except ParseError:
        # Kept, so that coverage checks can reject this entry explicitly.
        embargo = None
    return LicensingEntry(
        publication_title=row.get("publication_title", "").strip(),
        print_identifier=row.get("print_identifier", "").strip(),
        online_identifier=row.get("online_identifier", "").strip(),
        first_year=_year(row.get("date_first_issue_online", ""), "date_first_issue_online"),
        first_volume=_number(row.get("num_first_vol_online", ""), "num_first_vol_online"),
        first_issue=_number(row.get("num_first_issue_online", ""), "num_first_issue_online"),
        last_year=_year(row.get("date_last_issue_online", ""), "date_last_issue_online"),
        last_volume=_number(row.get("num_last_vol_online", ""), "num_last_vol_online"),
        last_issue=_number(row.get("num_last_issue_online", ""), "num_last_issue_online"),
        embargo_info=embargo_info,
        embargo=embargo,
        title_url=row.get("title_url", "").strip(),
        coverage_notes=row.get("coverage_notes", "").strip(),
    )


def parse_holdings(lines: Iterable[str], source: str = "") -> Holdings:
    """Parse KBART lines into holdings.

    Lines with malformed bounds are skipped and recorded in
    ``Holdings.errors``; they do not abort the parse.
    """
    holdings = Holdings()
    if csv.field_size_limit() < FIELD_SIZE_LIMIT:
        csv.field_size_limit(FIELD_SIZE_LIMIT)
    reader = csv.reader(lines, delimiter="\t", quoting=csv.QUOTE_NONE)
    header = None
    lineno = 0
    try:
        for lineno, fields in enumerate(reader, start=1):
            if header is None:
                header = [name.strip().lstrip("\ufeff").lower() for name in fields]
                continue
            if not any(value.strip() for value in fields):
                continue
            row = dict(zip(header, fields))
            try:
                holdings.add(entry_from_row(row))
            except ParseError as e:
                e.details.update({"line": lineno, "source": source})
                holdings.errors.append(e)
    except csv.Error as e:
        raise ParseError(
            f"unreadable holdings file {source}: {e}",
            details={"source": source, "line": lineno + 1}
        ) from e
    if holdings.errors:
        logger.warning(
            "Skipped malformed holdings lines",
            source=source,
            count=len(holdings.errors),
            first_error=holdings.errors[0].message
        )
    return holdings


def _read_archive(path: Path) -> Holdings:
    holdings = Holdings()
    with zipfile.ZipFile(path) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            with archive.open(info) as handle:
                text = io.TextIOWrapper(handle, encoding="utf-8", errors="replace", newline="")
                holdings.extend(parse_holdings(text, source=f"{path}:{info.filename}"))
    return holdings


def read_holdings_file(path: Union[str, Path]) -> Holdings:
    """Read a KBART file or a zip archive of KBART files.

    Raises ParseError for files that cannot be read as KBART at all, e.g.
    a corrupt archive.
    """
    path = Path(path)
    if zipfile.is_zipfile(path):
        try:
            return _read_archive(path)
        except (zipfile.BadZipFile, zlib.error) as e:
            raise ParseError(f"corrupt holdings archive {path}: {e}", details={"source": str(path)}) from e
    with open(path, encoding="utf-8", errors="replace", newline="") as handle:
        return parse_holdings(handle, source=str(path))
