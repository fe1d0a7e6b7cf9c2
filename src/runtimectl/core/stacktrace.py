"""Capture stacks of every live thread and pending asyncio task."""

import asyncio
import sys
import threading
import traceback
from types import FrameType

from runtimectl.core.models import StackTrace, TaskStackTrace, ThreadStackTrace


def _format_frames(summary: traceback.StackSummary) -> tuple[str, ...]:
    return tuple(f"{f.filename}:{f.lineno} in {f.name}" for f in summary)


def _thread_frames(frame: FrameType) -> tuple[str, ...]:
    return _format_frames(traceback.extract_stack(frame))


def _task_frames(task: asyncio.Task) -> tuple[str, ...]:
    # get_stack() returns the suspended coroutine frames, outermost first
    frames = []
    for frame in task.get_stack():
        code = frame.f_code
        frames.append(f"{code.co_filename}:{frame.f_lineno} in {code.co_name}")
    return tuple(frames)


def _running_tasks() -> set[asyncio.Task]:
    try:
        return asyncio.all_tasks()
    except RuntimeError:
        # No running event loop in this thread
        return set()


def get_stack_trace() -> StackTrace:
    """Return the current stacks of all threads and tasks.

    Threads are ordered by id and tasks by name so repeated dumps are
    easy to compare.
    """
    threads_by_id = {t.ident: t for t in threading.enumerate()}
    threads = []
    for thread_id, frame in sys._current_frames().items():
        thread = threads_by_id.get(thread_id)
        threads.append(
            ThreadStackTrace(
                id=thread_id,
                name=thread.name if thread is not None else f"thread-{thread_id}",
                daemon=thread.daemon if thread is not None else False,
                frames=_thread_frames(frame),
            )
        )
    tasks = [
        TaskStackTrace(name=task.get_name(), frames=_task_frames(task))
        for task in _running_tasks()
    ]
    return StackTrace(
        threads=tuple(sorted(threads, key=lambda t: t.id)),
        tasks=tuple(sorted(tasks, key=lambda t: t.name)),
    )
