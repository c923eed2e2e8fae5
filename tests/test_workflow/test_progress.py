"""Unit tests for progress tracking (projgen.workflow.progress).

Tests cover:
- ProgressTracker percent clamping (never decreases, capped at 100)
- Listener fan-out, unsubscribe and misbehaving listeners
- Warnings/errors accumulation and snapshot isolation
- translate_progress field mapping
"""

from __future__ import annotations

import logging

import pytest

from projgen.workflow.progress import PhaseProgress, ProgressTracker, translate_progress

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# ProgressTracker
# ---------------------------------------------------------------------------

class TestProgressTracker:
    def test_initial_state(self):
        tracker = ProgressTracker()
        assert tracker.percent == 0.0
        assert tracker.errors == []
        assert tracker.warnings == []

    def test_update_sets_fields(self):
        tracker = ProgressTracker()
        tracker.update("validation", "Project validated", 40.0, "3 issues")
        snap = tracker.snapshot()
        assert snap.stage == "validation"
        assert snap.step == "Project validated"
        assert snap.percent == 40.0
        assert snap.message == "3 issues"

    def test_percent_never_decreases(self):
        tracker = ProgressTracker()
        tracker.update("a", "", 60.0, "")
        tracker.update("b", "", 50.0, "")
        assert tracker.percent == 60.0
        assert tracker.snapshot().stage == "b"

    def test_percent_capped_at_100(self):
        tracker = ProgressTracker()
        tracker.update("a", "", 150.0, "")
        assert tracker.percent == 100.0

    def test_listeners_receive_every_update(self):
        tracker = ProgressTracker()
        seen: list[float] = []
        tracker.subscribe(lambda p: seen.append(p.percent))
        tracker.update("a", "", 10.0, "")
        tracker.update("b", "", 5.0, "")
        tracker.update("c", "", 100.0, "")
        assert seen == [10.0, 10.0, 100.0]

    def test_multiple_listeners(self):
        tracker = ProgressTracker()
        first: list[str] = []
        second: list[str] = []
        tracker.subscribe(lambda p: first.append(p.stage))
        tracker.subscribe(lambda p: second.append(p.stage))
        tracker.update("audit", "", 70.0, "")
        assert first == ["audit"]
        assert second == ["audit"]

    def test_unsubscribe(self):
        tracker = ProgressTracker()
        seen: list[str] = []
        unsubscribe = tracker.subscribe(lambda p: seen.append(p.stage))
        tracker.update("a", "", 10.0, "")
        unsubscribe()
        unsubscribe()
        tracker.update("b", "", 20.0, "")
        assert seen == ["a"]

    def test_failing_listener_is_logged_not_raised(self, caplog):
        tracker = ProgressTracker()
        seen: list[str] = []

        def bad(progress: PhaseProgress) -> None:
            raise RuntimeError("listener broke")

        tracker.subscribe(bad)
        tracker.subscribe(lambda p: seen.append(p.stage))
        with caplog.at_level(logging.WARNING, logger="projgen"):
            tracker.update("a", "", 10.0, "")
        assert seen == ["a"]
        assert "Progress listener raised" in caplog.text

    def test_snapshot_is_a_copy(self):
        tracker = ProgressTracker()
        tracker.add_warning("first")
        snap = tracker.snapshot()
        snap.warnings.append("mutated")
        assert tracker.warnings == ["first"]

    def test_errors_and_warnings_accumulate(self):
        tracker = ProgressTracker()
        tracker.add_warning("w1")
        tracker.add_warning("w2")
        tracker.add_error("e1")
        assert tracker.warnings == ["w1", "w2"]
        assert tracker.errors == ["e1"]


# ---------------------------------------------------------------------------
# translate_progress
# ---------------------------------------------------------------------------

class TestTranslateProgress:
    def test_maps_fields(self):
        internal = PhaseProgress(
            stage="audit",
            step="Project audited",
            percent=70.0,
            message="score 88",
            warnings=["w"],
            errors=["e"],
        )
        public = translate_progress(internal, "workflow_abc")
        assert public.workflow_id == "workflow_abc"
        assert public.stage == "audit"
        assert public.step == "Project audited"
        assert public.percent_complete == 70.0
        assert public.message == "score 88"
        assert public.start_time == internal.start_time
        assert public.elapsed_time >= 0.0
        assert public.warnings == ["w"]
        assert public.errors == ["e"]

    def test_lists_are_copied(self):
        internal = PhaseProgress(warnings=["w"])
        public = translate_progress(internal, "workflow_x")
        internal.warnings.append("later")
        assert public.warnings == ["w"]
