"""
Tests for utility modules: logging, retry, configuration and models.

Run with: pytest tests/test_utils.py -v
"""

import logging
from unittest.mock import AsyncMock

import pytest
import requests

from envelope3d.core.config import Settings
from envelope3d.core.models import surface_areas_from_response
from envelope3d.utils import (
    FileFormatter,
    RetryConfig,
    RetryState,
    SceneFormatter,
    get_logger,
    retry_async,
    retry_with_backoff,
    setup_logging,
)
from envelope3d.utils.retry import calculate_delay


class TestLogging:
    """Tests for logging configuration."""

    def test_get_logger(self):
        logger = get_logger("test_module")
        assert logger.name == "test_module"

    def test_setup_adds_handler(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert len(root.handlers) > 0
        assert root.level == logging.INFO
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_formatter_renders_context(self):
        formatter = SceneFormatter(use_colors=False)
        record = logging.LogRecord("envelope3d.test", logging.WARNING, __file__, 1, "Skipping feature", None, None)
        record.feature_index = 3
        record.collection = "surfaces_adiabatic"
        output = formatter.format(record)
        assert "Skipping feature" in output
        assert "collection=surfaces_adiabatic" in output
        assert "feature_index=3" in output

    def test_file_formatter(self):
        record = logging.LogRecord("envelope3d.test", logging.INFO, __file__, 1, "Fetching geometry", None, None)
        record.gmlid = "DEBY_LOD2_4909255"
        output = FileFormatter().format(record)
        assert "'gmlid': 'DEBY_LOD2_4909255'" in output
        assert "'level': 'INFO'" in output


class TestRetryWithBackoff:
    """Tests for the blocking retry decorator."""

    def test_succeeds_after_transient_error(self):
        outcomes = [requests.ConnectionError("reset"), "ok"]
        calls = []

        @retry_with_backoff(config=RetryConfig(max_retries=2, base_delay=0, jitter=False))
        def fetch():
            calls.append(1)
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert fetch() == "ok"
        assert len(calls) == 2

    def test_non_retryable_raised_immediately(self):
        calls = []

        @retry_with_backoff(config=RetryConfig(max_retries=3, base_delay=0))
        def parse():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            parse()
        assert len(calls) == 1

    def test_max_retries_override_leaves_config_alone(self):
        config = RetryConfig(max_retries=5, base_delay=0, jitter=False)
        calls = []

        @retry_with_backoff(config=config, max_retries=1)
        def fetch():
            calls.append(1)
            raise requests.ConnectionError("reset")

        with pytest.raises(requests.ConnectionError):
            fetch()
        assert len(calls) == 2
        assert config.max_retries == 5

    def test_exponential_and_linear_delay(self):
        exponential = RetryConfig(base_delay=1.0, jitter=False)
        linear = RetryConfig(base_delay=1.0, jitter=False, backoff="linear")
        assert [calculate_delay(i, exponential) for i in range(3)] == [1.0, 2.0, 4.0]
        assert [calculate_delay(i, linear) for i in range(3)] == [1.0, 2.0, 3.0]

    def test_delay_capped(self):
        config = RetryConfig(base_delay=10.0, max_delay=15.0, jitter=False)
        assert calculate_delay(5, config) == 15.0


class TestRetryState:
    """Tests for the explicit attempt counter."""

    def test_auth_allows_one_retry(self):
        state = RetryState.for_auth()
        assert state.begin_attempt() == 1
        assert not state.exhausted
        assert state.begin_attempt() == 2
        assert state.exhausted
        assert state.retries_used == 1
        with pytest.raises(RuntimeError):
            state.begin_attempt()

    def test_linear_backoff(self):
        state = RetryState.for_scene_init(backoff_s=0.5)
        delays = []
        for _ in range(3):
            state.begin_attempt()
            delays.append(state.next_delay())
        assert delays == [0.5, 1.0, 1.5]

    @pytest.mark.asyncio
    async def test_retry_async_succeeds(self):
        operation = AsyncMock(side_effect=[RuntimeError("not ready"), RuntimeError("not ready"), "ready"])
        state = RetryState.for_scene_init(backoff_s=0.0)
        assert await retry_async(operation, state) == "ready"
        assert state.attempts == 3

    @pytest.mark.asyncio
    async def test_retry_async_exhausted(self):
        operation = AsyncMock(side_effect=RuntimeError("not ready"))
        state = RetryState.for_scene_init(max_attempts=2, backoff_s=0.0)
        with pytest.raises(RuntimeError, match="not ready"):
            await retry_async(operation, state)
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_async_only_listed_errors(self):
        operation = AsyncMock(side_effect=KeyError("boom"))
        state = RetryState.for_scene_init(backoff_s=0.0)
        with pytest.raises(KeyError):
            await retry_async(operation, state, retry_on=(RuntimeError,))
        assert operation.await_count == 1


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        config = Settings()
        assert config.zoom_threshold == 14
        assert config.primary_collections == ["surfaces_adiabatic", "visualization_zone"]
        assert config.multipolygon_mode == "flatten"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ENVELOPE3D_ZOOM_THRESHOLD", "16")
        monkeypatch.setenv("ENVELOPE3D_MULTIPOLYGON_MODE", "per_part")
        config = Settings()
        assert config.zoom_threshold == 16
        assert config.multipolygon_mode == "per_part"


class TestSurfaceAreas:
    """Tests for summed surface area extraction."""

    def test_numeric_rows_kept(self):
        rows = surface_areas_from_response(
            {"summed_surface_areas": {"WallSurface": "812.4", "RoofSurface": 301, "note": "n/a"}}
        )
        assert [(r.label, r.value) for r in rows] == [("WallSurface", 812.4), ("RoofSurface", 301.0)]
        assert rows[0].unit == "m²"

    def test_missing(self):
        assert surface_areas_from_response({}) == []
