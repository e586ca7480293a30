"""Tests for ProgressRegistry thread-safe progress tracking."""

import threading

from layerforge.core.models import ProgressSnapshot, SessionStatus
from layerforge.generation import ProgressRegistry


def _snap(session_id="s1", **kwargs) -> ProgressSnapshot:
    return ProgressSnapshot(session_id=session_id, **kwargs)


class TestProgressRegistry:
    """Test ProgressRegistry publish/read semantics."""

    def test_initial_state(self):
        """Fresh registry knows no sessions."""
        registry = ProgressRegistry()
        assert len(registry) == 0
        assert registry.get("s1") is None
        assert registry.snapshot() == {}

    def test_publish_and_get(self):
        """Published snapshot is returned for its session id."""
        registry = ProgressRegistry()
        registry.publish(_snap(status=SessionStatus.GENERATING, percentage=25.0))

        snap = registry.get("s1")
        assert snap.status == SessionStatus.GENERATING
        assert snap.percentage == 25.0
        assert "s1" in registry

    def test_publish_replaces_wholesale(self):
        """A second publish fully replaces the first, no field merging."""
        registry = ProgressRegistry()
        registry.publish(_snap(percentage=50.0, message="Generated 2/4 items..."))
        registry.publish(_snap(status=SessionStatus.ERROR, error="boom"))

        snap = registry.get("s1")
        assert snap.status == SessionStatus.ERROR
        assert snap.percentage == 0.0
        assert snap.message == ""
        assert snap.error == "boom"

    def test_sessions_are_independent(self):
        """Publishing for one session leaves others untouched."""
        registry = ProgressRegistry()
        registry.publish(_snap("a", percentage=10.0))
        registry.publish(_snap("b", percentage=90.0))

        assert registry.get("a").percentage == 10.0
        assert registry.get("b").percentage == 90.0
        assert len(registry) == 2

    def test_remove(self):
        """remove() drops the entry and ignores unknown ids."""
        registry = ProgressRegistry()
        registry.publish(_snap())
        registry.remove("s1")
        registry.remove("never-published")
        assert "s1" not in registry

    def test_snapshot_returns_copy(self):
        """Modifying the snapshot dict doesn't affect the registry."""
        registry = ProgressRegistry()
        registry.publish(_snap())

        snap = registry.snapshot()
        snap.pop("s1")
        snap["other"] = _snap("other")

        assert "s1" in registry
        assert "other" not in registry

    def test_concurrent_publish(self):
        """Publishing from many threads keeps exactly one entry per session."""
        registry = ProgressRegistry()

        def worker(n: int):
            for i in range(100):
                registry.publish(_snap(f"s{n}", current=i))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 8
        assert all(snap.current == 99 for snap in registry.snapshot().values())


class TestBuildProgressDisplay:
    """Tests for the CLI _build_progress_display function."""

    def test_no_snapshot_shows_starting(self):
        """No snapshot yet shows 'Starting...' header."""
        from layerforge.cli.commands.generate import _build_progress_display

        display = _build_progress_display(None, elapsed=0.0)
        assert "Starting..." in display.plain

    def test_active_snapshot_shows_items_and_percentage(self):
        """Active snapshot shows status, item counts and percentage."""
        from layerforge.cli.commands.generate import _build_progress_display

        snap = _snap(
            status=SessionStatus.GENERATING,
            percentage=50.0,
            current=2,
            total=4,
            message="Generated 2/4 items...",
        )
        text = _build_progress_display(snap, elapsed=75.0).plain
        assert "Generating" in text
        assert "2/4 items" in text
        assert "50%" in text
        assert "1m 15s" in text
        assert "Generated 2/4 items..." in text
