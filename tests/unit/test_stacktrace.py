"""Tests for stack trace capture."""

import asyncio
import contextlib
import threading

import pytest

from runtimectl.core.stacktrace import get_stack_trace

pytestmark = [pytest.mark.unit, pytest.mark.tier(1)]


class TestGetStackTrace:
    def test_includes_current_thread_and_caller_frame(self) -> None:
        trace = get_stack_trace()
        current = threading.get_ident()
        threads = {t.id: t for t in trace.threads}
        assert current in threads
        assert any(
            "test_includes_current_thread_and_caller_frame" in frame
            for frame in threads[current].frames
        )

    def test_includes_other_named_threads(self) -> None:
        started = threading.Event()
        release = threading.Event()

        def worker() -> None:
            started.set()
            release.wait()

        thread = threading.Thread(target=worker, name="parked-worker", daemon=True)
        thread.start()
        started.wait()
        try:
            trace = get_stack_trace()
        finally:
            release.set()
            thread.join()

        parked = [t for t in trace.threads if t.name == "parked-worker"]
        assert len(parked) == 1
        assert parked[0].daemon is True
        assert any("in worker" in frame for frame in parked[0].frames)

    def test_threads_are_sorted_by_id(self) -> None:
        ids = [t.id for t in get_stack_trace().threads]
        assert ids == sorted(ids)

    def test_no_tasks_outside_event_loop(self) -> None:
        assert get_stack_trace().tasks == ()

    async def test_includes_pending_tasks(self) -> None:
        async def sleeper() -> None:
            await asyncio.sleep(10)

        task = asyncio.create_task(sleeper(), name="sleeper-task")
        await asyncio.sleep(0)
        try:
            trace = get_stack_trace()
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        names = [t.name for t in trace.tasks]
        assert "sleeper-task" in names
        sleeper_trace = next(t for t in trace.tasks if t.name == "sleeper-task")
        assert any("in sleeper" in frame for frame in sleeper_trace.frames)

    def test_to_dict_is_json_ready(self) -> None:
        data = get_stack_trace().to_dict()
        assert set(data) == {"threads", "tasks"}
        assert {"id", "name", "daemon", "frames"} <= set(data["threads"][0])
