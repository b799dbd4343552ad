"""
Unit tests for coverage evaluation and moving walls.
"""

import pytest
from datetime import date, timedelta

from shared.errors import ParseError, UnparsableValue
from service_tagger.app.licensing.coverage import CoverageEvaluator
from service_tagger.app.licensing.models import Embargo, LicensingEntry, WallKind

from conftest import TODAY, make_record


class TestEmbargo:
    """Test cases for Embargo parsing and boundaries."""

    def test_parse_past_wall(self):
        """Test parsing a P wall."""
        embargo = Embargo.parse("P1Y")

        assert embargo.kind == WallKind.PAST
        assert embargo.amount == 1
        assert embargo.unit == "Y"
        assert str(embargo) == "P1Y"

    def test_parse_recent_wall_lowercase(self):
        """Test parsing is case insensitive."""
        embargo = Embargo.parse(" r6m ")

        assert embargo.kind == WallKind.RECENT
        assert embargo.amount == 6
        assert embargo.unit == "M"

    def test_parse_empty(self):
        """Test empty embargo means no wall."""
        assert Embargo.parse("") is None
        assert Embargo.parse("   ") is None

    def test_parse_invalid(self):
        """Test malformed embargo."""
        with pytest.raises(ParseError):
            Embargo.parse("one year")

    def test_boundary_units(self):
        """Test boundary computation for days, months and years."""
        now = date(2024, 3, 31)

        assert Embargo.parse("P30D").boundary(now) == date(2024, 3, 1)
        assert Embargo.parse("P1M").boundary(now) == date(2024, 2, 29)
        assert Embargo.parse("P2Y").boundary(now) == date(2022, 3, 31)
        assert Embargo.parse("P14M").boundary(now) == date(2023, 1, 31)


class TestCoverageEvaluator:
    """Test cases for CoverageEvaluator."""

    @pytest.fixture
    def evaluator(self, today):
        return CoverageEvaluator(today=today)

    def test_unbounded_entry_covers(self, evaluator):
        """Test an entry without bounds covers anything, even unparsable values."""
        record = make_record(**{"rft.date": "unknown", "rft.volume": "x"})

        assert evaluator.covers(record, LicensingEntry(print_identifier="1234-5678")) is True

    @pytest.mark.parametrize("year", ["1800-01-01", "2020-05-01", "2999-12-31"])
    def test_unset_year_bounds_never_reject_on_year(self, evaluator, year):
        """Test unset year bounds do not constrain the year."""
        entry = LicensingEntry(first_volume=5, last_volume=1)

        assert evaluator.covers(make_record(**{"rft.date": year}), entry) is True

    def test_before_first_year(self, evaluator):
        """Test record before the lower year bound."""
        entry = LicensingEntry(first_year=2021)

        assert evaluator.covers(make_record(), entry) is False

    def test_after_last_year(self, evaluator):
        """Test record after the upper year bound."""
        entry = LicensingEntry(first_year=2000, last_year=2019)

        assert evaluator.covers(make_record(), entry) is False

    def test_within_year_range(self, evaluator):
        """Test record within the year range, volume not consulted."""
        entry = LicensingEntry(first_year=2015, first_volume=99, last_year=2021, last_volume=1)

        assert evaluator.covers(make_record(), entry) is True

    def test_first_year_volume_below_bound(self, evaluator):
        """Test volume below the bound in the first year."""
        entry = LicensingEntry(first_year=2020, first_volume=11)

        assert evaluator.covers(make_record(), entry) is False

    def test_first_year_issue_below_bound(self, evaluator):
        """Test issue below the bound when volume sits on the bound."""
        entry = LicensingEntry(first_year=2020, first_volume=10, first_issue=3)

        assert evaluator.covers(make_record(), entry) is False
        assert evaluator.covers(make_record(**{"rft.issue": "3"}), entry) is True

    def test_issue_ignored_above_first_volume(self, evaluator):
        """Test the issue only matters when the volume equals the bound."""
        entry = LicensingEntry(first_year=2020, first_volume=9, first_issue=5)

        assert evaluator.covers(make_record(**{"rft.issue": "n/a"}), entry) is True

    def test_last_year_volume_above_bound(self, evaluator):
        """Test volume above the bound in the last year."""
        entry = LicensingEntry(last_year=2020, last_volume=9)

        assert evaluator.covers(make_record(), entry) is False

    def test_last_year_issue_above_bound(self, evaluator):
        """Test issue above the bound when volume sits on the upper bound."""
        entry = LicensingEntry(last_year=2020, last_volume=10, last_issue=1)

        assert evaluator.covers(make_record(), entry) is False
        assert evaluator.covers(make_record(**{"rft.issue": "1"}), entry) is True

    def test_unparsable_volume(self, evaluator):
        """Test non-numeric volume where a bound requires comparison."""
        entry = LicensingEntry(first_year=2020, first_volume=1)

        with pytest.raises(UnparsableValue) as exc_info:
            evaluator.covers(make_record(**{"rft.volume": "ten"}), entry)

        assert exc_info.value.field == "volume"

    def test_unparsable_date(self, evaluator):
        """Test unparsable date where a year bound applies."""
        entry = LicensingEntry(first_year=2020)

        with pytest.raises(UnparsableValue):
            evaluator.covers(make_record(**{"rft.date": "spring"}), entry)

    def test_fallback_date(self, evaluator):
        """Test x.date is used when rft.date is missing."""
        entry = LicensingEntry(first_year=2020)

        assert evaluator.covers(make_record(**{"rft.date": "", "x.date": "2021-03-01"}), entry)
        assert not evaluator.covers(make_record(**{"rft.date": "", "x.date": "2019"}), entry)

    def test_malformed_embargo_rejects(self, evaluator):
        """Test an entry with unreadable embargo info raises."""
        entry = LicensingEntry(embargo_info="sometimes")

        with pytest.raises(UnparsableValue):
            evaluator.covers(make_record(), entry)


class TestMovingWall:
    """Test cases for moving walls on an exactly matching boundary entry."""

    def entry(self, embargo: str) -> LicensingEntry:
        return LicensingEntry(
            print_identifier="1234-5678",
            first_year=2020, first_volume=10, first_issue=2,
            last_year=2020, last_volume=10, last_issue=2,
            embargo_info=embargo,
            embargo=Embargo.parse(embargo),
        )

    def test_wall_passed(self):
        """Test record older than now minus the wall is covered."""
        published = date(2020, 5, 1)
        evaluator = CoverageEvaluator(today=lambda: published.replace(year=2021) + timedelta(days=1))

        assert evaluator.covers(make_record(), self.entry("P1Y")) is True

    def test_wall_not_yet_passed(self):
        """Test record newer than now minus the wall is not yet covered."""
        published = date(2020, 5, 1)
        evaluator = CoverageEvaluator(today=lambda: published.replace(year=2021) - timedelta(days=1))

        assert evaluator.covers(make_record(), self.entry("P1Y")) is False

    def test_wall_boundary_inclusive(self):
        """Test a record exactly on the wall is covered."""
        evaluator = CoverageEvaluator(today=lambda: date(2021, 5, 1))

        assert evaluator.covers(make_record(), self.entry("P1Y")) is True

    def test_recent_wall(self):
        """Test R walls only grant access to recent content."""
        entry = self.entry("R6M")

        assert CoverageEvaluator(today=lambda: date(2020, 8, 1)).covers(make_record(), entry) is True
        assert CoverageEvaluator(today=lambda: date(2021, 8, 1)).covers(make_record(), entry) is False

    def test_future_record_violates_wall(self):
        """Test a record dated in the future relative to a short wall."""
        evaluator = CoverageEvaluator(today=lambda: TODAY)
        entry = LicensingEntry(first_year=2015, embargo_info="P1M", embargo=Embargo.parse("P1M"))

        assert evaluator.covers(make_record(**{"rft.date": "2030-01-01"}), entry) is False
