"""
Shared fixtures for ISIL Tagger tests.
"""

from datetime import date
from typing import Dict, List

import pytest

from shared.config import TaggerSettings
from shared.logging import configure_logging
from service_tagger.app.licensing.kbart import COLUMNS
from service_tagger.app.models import Record


TODAY = date(2024, 6, 1)


def kbart_text(rows: List[Dict[str, str]]) -> str:
    """Render KBART rows, one header line plus one line per row."""
    lines = ["\t".join(COLUMNS)]
    for row in rows:
        lines.append("\t".join(row.get(column, "") for column in COLUMNS))
    return "\n".join(lines) + "\n"


def make_record(**fields) -> Record:
    data = {
        "finc.id": "ai-49-1",
        "finc.source_id": "49",
        "finc.mega_collection": ["Collection A"],
        "rft.issn": ["1234-5678"],
        "rft.date": "2020-05-01",
        "rft.volume": "10",
        "rft.issue": "2",
    }
    data.update(fields)
    return Record.model_validate(data)


@pytest.fixture(autouse=True, scope="session")
def quiet_logging():
    configure_logging("tagger", "warning")


@pytest.fixture
def today():
    return lambda: TODAY


@pytest.fixture
def settings(tmp_path):
    return TaggerSettings(
        cache_dir=tmp_path / "cache",
        download_max_attempts=2,
        download_base_delay=0.0,
        download_max_delay=0.0,
        workers=4,
        batch_size=3,
        progress_interval=2,
    )
