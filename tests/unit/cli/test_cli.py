"""Tests for the cache maintenance CLI."""

import json

import pytest
from typer.testing import CliRunner

from rayhar.cache.keys import CacheKeys
from rayhar.cache.runtime import CacheRuntime
from rayhar.cache.storage import MemoryStorage
from rayhar.cli import app
from rayhar.cli import cache_cmd
from rayhar.config import Settings

runner = CliRunner()


@pytest.fixture
def runtime(clock, monkeypatch) -> CacheRuntime:
    """Runtime shared by every command in one test, posing as a Redis deployment."""
    runtime = CacheRuntime(
        config=Settings(durable_backend="redis"),
        clock=clock,
        durable_storage=MemoryStorage(),
    )
    monkeypatch.setattr(cache_cmd, "_runtime", lambda: runtime)
    return runtime


class TestStatsCommand:
    """Test `rayhar stats`."""

    def test_text_output(self, runtime: CacheRuntime) -> None:
        """Stats render a table per tier."""
        runtime.durable.write(CacheKeys.leads_all(), [1])

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "durable" in result.output
        assert "ephemeral" in result.output

    def test_json_output(self, runtime: CacheRuntime) -> None:
        """JSON output carries the counts."""
        runtime.durable.write(CacheKeys.leads_all(), [1])

        result = runner.invoke(app, ["stats", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["prefix"] == "rayhar_cache_"
        assert data["tiers"][0]["valid_entries"] == 1


class TestSweepCommand:
    """Test `rayhar sweep`."""

    def test_removes_expired(self, runtime: CacheRuntime, clock) -> None:
        """Expired entries are swept."""
        runtime.durable.write(CacheKeys.leads_all(), [1], ttl_ms=10)
        clock.advance(11)

        result = runner.invoke(app, ["sweep", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["expired"] == 1
        assert runtime.durable.keys() == []


class TestInvalidateCommand:
    """Test `rayhar invalidate`."""

    def test_invalidates_matching(self, runtime: CacheRuntime) -> None:
        """Matching entries are removed, others kept."""
        runtime.durable.write(CacheKeys.customers_all(), [])
        runtime.durable.write(CacheKeys.leads_all(), [])

        result = runner.invoke(app, ["invalidate", "customers"])

        assert result.exit_code == 0
        assert "Invalidated 1 entries" in result.output
        assert runtime.durable.keys() == [CacheKeys.leads_all()]

    def test_empty_pattern_rejected(self, runtime: CacheRuntime) -> None:
        """An empty pattern is a usage error."""
        result = runner.invoke(app, ["invalidate", ""])
        assert result.exit_code == 2


class TestClearCommand:
    """Test `rayhar clear`."""

    def test_clear_with_confirmation_flag(self, runtime: CacheRuntime) -> None:
        """--yes clears without prompting."""
        runtime.durable.write(CacheKeys.leads_all(), [])

        result = runner.invoke(app, ["clear", "--yes"])

        assert result.exit_code == 0
        assert "Cleared 1 cache entries" in result.output

    def test_clear_aborted(self, runtime: CacheRuntime) -> None:
        """Declining the prompt leaves the cache alone."""
        runtime.durable.write(CacheKeys.leads_all(), [])

        result = runner.invoke(app, ["clear"], input="n\n")

        assert result.exit_code == 1
        assert runtime.durable.keys() == [CacheKeys.leads_all()]


class TestMemoryBackend:
    """Commands refuse to work on a process-local durable tier."""

    @pytest.fixture
    def memory_runtime(self, clock, monkeypatch) -> CacheRuntime:
        runtime = CacheRuntime(config=Settings(durable_backend="memory"), clock=clock)
        monkeypatch.setattr(cache_cmd, "_runtime", lambda: runtime)
        return runtime

    @pytest.mark.parametrize("args", [["stats"], ["sweep"], ["invalidate", "leads"], ["clear", "--yes"]])
    def test_exits_non_zero(self, memory_runtime: CacheRuntime, args: list[str]) -> None:
        """Every command exits 1 and names the backend setting."""
        memory_runtime.durable.write(CacheKeys.leads_all(), [1])

        result = runner.invoke(app, args)

        assert result.exit_code == 1
        assert "RAYHAR_DURABLE_BACKEND=redis" in result.output
        assert memory_runtime.durable.keys() == [CacheKeys.leads_all()]


class TestInvalidateSharedWrites:
    """Entries written by another process are found without a prior sweep."""

    def test_entry_from_other_writer_is_removed(self, runtime: CacheRuntime) -> None:
        """The command sees keys it never wrote itself."""
        runtime.durable_storage.set(
            CacheKeys.leads_all(),
            '{"data":["stale"],"timestamp":0,"expiry":0,"sessionId":null}',
        )

        result = runner.invoke(app, ["invalidate", "leads"])

        assert result.exit_code == 0
        assert "Invalidated 1 entries" in result.output
        assert runtime.durable_storage.get(CacheKeys.leads_all()) is None
