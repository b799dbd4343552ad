"""
Unit tests for the shared modules.
"""

from pathlib import Path

import pytest

from shared.config import DEFAULT_PROVIDER_LINKS, TaggerSettings, default_cache_dir, get_settings
from shared.errors import (
    ConfigContradiction, ConfigError, DownloadError, NoMatchingCase, TaggerException, UnparsableValue,
)
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, RetryError, _calculate_delay, retry_async, retry_on_exception


class TestRetry:
    """Test cases for the retry helpers."""

    @pytest.mark.asyncio
    async def test_retry_until_success(self):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("down")
            return "ok"

        result = await retry_async(
            flaky,
            exceptions=(ConnectionError,),
            config=RetryConfig(max_attempts=3, base_delay=0.0, jitter=False)
        )

        assert result == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_retry_exhausted(self):
        @retry_on_exception(exceptions=(ConnectionError,), config=RetryConfig(max_attempts=2, base_delay=0.0))
        async def down():
            raise ConnectionError("down")

        with pytest.raises(RetryError) as exc_info:
            await down()

        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.last_exception, ConnectionError)
        assert down.__name__ == "down"

    @pytest.mark.asyncio
    async def test_other_exceptions_not_retried(self):
        attempts = []

        async def broken():
            attempts.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await retry_async(broken, exceptions=(ConnectionError,), config=RetryConfig(base_delay=0.0))
        assert len(attempts) == 1

    def test_delay_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)

        assert _calculate_delay(1, config) == 1.0
        assert _calculate_delay(3, config) == 4.0
        assert _calculate_delay(10, config) == 5.0


class TestErrors:
    """Test cases for the error hierarchy."""

    def test_response(self):
        error = DownloadError("https://example.org/a.zip", "gone", details={"attempts": 3})

        response = error.to_response()

        assert response.code == "DOWNLOAD_ERROR"
        assert response.message == "https://example.org/a.zip: gone"
        assert response.details["link"] == "https://example.org/a.zip"
        assert response.details["attempts"] == 3

    def test_config_errors(self):
        """Test rule errors are configuration errors with their own codes."""
        contradiction = ConfigContradiction("no holding file to evaluate")
        no_case = NoMatchingCase()

        assert isinstance(contradiction, ConfigError)
        assert isinstance(no_case, ConfigError)
        assert contradiction.code == "CONFIG_CONTRADICTION"
        assert no_case.code == "NO_MATCHING_CASE"
        assert isinstance(no_case, TaggerException)

    def test_unparsable_value(self):
        error = UnparsableValue("volume", "IV")

        assert error.field == "volume"
        assert error.value == "IV"
        assert error.details == {"field": "volume", "value": "IV"}


class TestMetrics:
    """Test cases for MetricsCollector."""

    def test_separate_registries(self):
        """Test collectors do not share counters."""
        first = MetricsCollector("a")
        second = MetricsCollector("b")

        first.increment_counter("attachments_total", case="plain")
        first.increment_counter("attachments_total", case="plain")
        first.increment_counter("attachments_total", case="holdings")

        assert first.counter_value("attachments_total", case="plain") == 2
        assert second.counter_value("attachments_total", case="plain") == 0
        assert first.counter_values("attachments_total", "case") == {"plain": 2, "holdings": 1}

    def test_unknown_metric(self):
        metrics = MetricsCollector("a")

        metrics.increment_counter("unknown_total", case="plain")

        assert metrics.counter_value("unknown_total") == 0.0
        assert metrics.counter_values("unknown_total", "case") == {}


class TestSettings:
    """Test cases for TaggerSettings."""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
        monkeypatch.delenv("TAGGER_WORKERS", raising=False)

        settings = TaggerSettings()

        assert settings.cache_dir == Path(tmp_path) / "isil-tagger"
        assert default_cache_dir() == settings.cache_dir
        assert settings.download_error_policy == "fail"
        assert settings.provider_links == DEFAULT_PROVIDER_LINKS
        assert settings.run_timeout is None

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("TAGGER_WORKERS", "3")
        monkeypatch.setenv("TAGGER_DOWNLOAD_ERROR_POLICY", "skip")

        settings = get_settings(batch_size=10, workers=None)

        assert settings.workers == 3
        assert settings.batch_size == 10
        assert settings.download_error_policy == "skip"

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("TAGGER_WORKERS", "3")

        assert get_settings(workers=8).workers == 8

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            TaggerSettings(download_error_policy="ignore")
