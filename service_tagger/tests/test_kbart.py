"""
Unit tests for KBART holdings parsing.
"""

import csv
import io
import zipfile

import pytest

from shared.errors import ParseError
from service_tagger.app.licensing import kbart
from service_tagger.app.licensing.kbart import parse_holdings, read_holdings_file
from service_tagger.app.licensing.models import Embargo, WallKind

from conftest import kbart_text


@pytest.fixture
def rows():
    return [
        {"publication_title": "Journal A", "print_identifier": "1234-5678", "online_identifier": "8765-4321",
         "date_first_issue_online": "2015-01-01", "num_first_vol_online": "1",
         "date_last_issue_online": "2021", "embargo_info": "P1Y"},
        {"publication_title": "Journal B", "print_identifier": "1111-2222"},
        {"publication_title": "Journal A, reprint", "online_identifier": " 1234-5678 ",
         "date_first_issue_online": "1990"},
    ]


class TestParseHoldings:
    """Test cases for parse_holdings."""

    def test_entries_parsed(self, rows):
        """Test typed fields of parsed entries."""
        holdings = parse_holdings(io.StringIO(kbart_text(rows)))

        assert len(holdings.entries) == 3
        assert list(holdings) == holdings.entries
        entry = holdings.entries[0]
        assert entry.publication_title == "Journal A"
        assert entry.first_year == 2015
        assert entry.first_volume == 1
        assert entry.first_issue is None
        assert entry.last_year == 2021
        assert entry.last_volume is None
        assert entry.embargo == Embargo(kind=WallKind.PAST, amount=1, unit="Y")
        assert holdings.errors == []

    def test_lookup_in_file_order(self, rows):
        """Test ISSN lookups return exactly the entries containing the ISSN, in file order."""
        holdings = parse_holdings(io.StringIO(kbart_text(rows)))

        titles = [e.publication_title for e in holdings.by_issn("1234-5678")]

        assert titles == ["Journal A", "Journal A, reprint"]
        assert [e.publication_title for e in holdings.by_issn("8765-4321")] == ["Journal A"]
        assert holdings.by_issn("0000-0000") == []
        assert len(holdings) == 3

    def test_missing_bounds_are_unbounded(self, rows):
        """Test empty and zero numeric fields."""
        rows[1]["num_first_vol_online"] = "0"
        holdings = parse_holdings(io.StringIO(kbart_text(rows)))

        entry = holdings.by_issn("1111-2222")[0]
        assert entry.first_year is None
        assert entry.first_volume is None
        assert entry.last_year is None
        assert entry.embargo is None

    def test_malformed_line_skipped(self, rows):
        """Test a line with a non-numeric bound is recorded, not fatal."""
        rows[1]["num_first_vol_online"] = "vol. 3"
        holdings = parse_holdings(io.StringIO(kbart_text(rows)), source="test.tsv")

        assert len(holdings.entries) == 2
        assert len(holdings.errors) == 1
        assert holdings.errors[0].details["line"] == 3
        assert holdings.errors[0].details["source"] == "test.tsv"

    def test_malformed_embargo_kept(self, rows):
        """Test entries with unreadable embargo info keep the raw value."""
        rows[1]["embargo_info"] = "sometimes"
        holdings = parse_holdings(io.StringIO(kbart_text(rows)))

        entry = holdings.by_issn("1111-2222")[0]
        assert entry.embargo is None
        assert entry.embargo_info == "sometimes"

    def test_columns_by_header_name(self):
        """Test reordered and extra columns."""
        text = "online_identifier\tpublisher_name\tdate_first_issue_online\n2222-3333\tACME\t2001\n"

        holdings = parse_holdings(io.StringIO(text))

        assert holdings.by_issn("2222-3333")[0].first_year == 2001

    def test_not_kbart(self):
        """Test a file without identifier columns yields an empty index."""
        holdings = parse_holdings(io.StringIO("<html>\n<body>not found</body>\n"))

        assert len(holdings) == 0


class TestReadHoldingsFile:
    """Test cases for reading files and archives."""

    def test_plain_file(self, tmp_path, rows):
        """Test reading a single KBART file."""
        path = tmp_path / "kbart.tsv"
        path.write_text(kbart_text(rows), encoding="utf-8")

        holdings = read_holdings_file(path)

        assert len(holdings.entries) == 3

    def test_zip_archive(self, tmp_path, rows):
        """Test reading an archive bundling several KBART files."""
        path = tmp_path / "kbart.zip"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("a/first.txt", kbart_text(rows[:1]))
            archive.writestr("second.txt", kbart_text(rows[1:]))

        holdings = read_holdings_file(path)

        assert len(holdings.entries) == 3
        assert [e.publication_title for e in holdings.by_issn("1234-5678")] == ["Journal A", "Journal A, reprint"]


def corrupt_archive(path, text):
    """Write a stored zip archive and flip one payload byte."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_STORED) as archive:
        archive.writestr("a.txt", text)
    data = bytearray(path.read_bytes())
    offset = data.index(b"Journal A")
    data[offset] ^= 0xFF
    path.write_bytes(bytes(data))
    return path


class TestUnreadableHoldings:
    """Test cases for holdings files that cannot be parsed at all."""

    def test_long_coverage_notes(self, tmp_path, rows):
        """Test fields beyond the csv default size limit."""
        rows[0]["coverage_notes"] = "x" * 200000
        path = tmp_path / "kbart.tsv"
        path.write_text(kbart_text(rows), encoding="utf-8")

        holdings = read_holdings_file(path)

        assert len(holdings.entries[0].coverage_notes) == 200000

    def test_corrupt_archive(self, tmp_path, rows):
        """Test a CRC mismatch raises ParseError."""
        path = corrupt_archive(tmp_path / "kbart.zip", kbart_text(rows))

        with pytest.raises(ParseError) as exc_info:
            read_holdings_file(path)

        assert exc_info.value.details["source"] == str(path)

    def test_unreadable_csv(self, monkeypatch):
        """Test csv errors raise ParseError with the source."""
        monkeypatch.setattr(kbart, "FIELD_SIZE_LIMIT", 10)
        text = "title\tissn\n" + "x" * 50 + "\t1234-5678\n"
        previous = csv.field_size_limit(10)
        try:
            with pytest.raises(ParseError) as exc_info:
                parse_holdings(io.StringIO(text), source="notes.tsv")
        finally:
            csv.field_size_limit(previous)

        assert exc_info.value.details == {"source": "notes.tsv", "line": 2}
