"""Unit tests for BackgroundRunner."""

import logging
import threading

import pytest

from boardhook.background import BackgroundRunner


@pytest.fixture
def runner():
    """A two-worker runner, shut down after the test."""
    r = BackgroundRunner(max_workers=2)
    yield r
    r.shutdown(wait=True)


@pytest.mark.unit
class TestBackgroundRunner:
    """Tests for fire-and-forget task execution."""

    def test_runs_task(self, runner: BackgroundRunner) -> None:
        """Submitted callables run with their arguments."""
        done = threading.Event()
        seen: list[tuple] = []

        def task(a: int, b: int = 0) -> None:
            seen.append((a, b))
            done.set()

        runner.submit("task", task, 1, b=2)

        assert done.wait(timeout=2)
        assert seen == [(1, 2)]

    def test_failures_are_logged(
        self, runner: BackgroundRunner, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failing task is logged, not raised."""

        def broken() -> None:
            raise RuntimeError("disk full")

        with caplog.at_level(logging.WARNING, logger="boardhook.background"):
            future = runner.submit("record_token_usage", broken)
            runner.drain()

        assert future is not None
        assert isinstance(future.exception(), RuntimeError)
        assert "record_token_usage failed: disk full" in caplog.text

    def test_drain_waits_for_pending(self, runner: BackgroundRunner) -> None:
        """drain() returns only after submitted tasks finish."""
        release = threading.Event()
        finished: list[bool] = []

        def slow() -> None:
            release.wait(timeout=2)
            finished.append(True)

        runner.submit("slow", slow)
        release.set()
        runner.drain()

        assert finished == [True]

    def test_submit_after_shutdown(self, runner: BackgroundRunner) -> None:
        """Tasks submitted after shutdown are dropped."""
        runner.shutdown()

        assert runner.submit("late", lambda: None) is None
