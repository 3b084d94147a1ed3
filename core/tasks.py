"""Background task runner for the Homeboard relay.

Every outbound call a handler makes (HTTP fetch, device command, shell
command) goes through TaskRunner.submit(). Work runs on a bounded
thread pool and returns a Future. Success and failure take one path:
on success the optional ``then`` callback receives the result, on
failure the exception is logged and dropped. Nothing is ever raised
back to the client that triggered the work.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class TaskRunner:
    """Bounded executor with uniform log-and-drop error handling."""

    def __init__(self, max_workers: int = 8, executor=None):
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="relay-task"
        )

    def submit(
        self,
        name: str,
        func: Callable[..., Any],
        *args,
        then: Optional[Callable[[Any], None]] = None,
        **kwargs,
    ) -> Future:
        """Run func(*args, **kwargs) in the background.

        Args:
            name: label used in log lines
            func: the blocking call to run
            then: called with the result when func succeeds
        """
        future = self._executor.submit(func, *args, **kwargs)
        future.add_done_callback(lambda f: self._finish(name, f, then))
        return future

    def _finish(self, name: str, future: Future, then):
        exc = future.exception()
        if exc is not None:
            logger.warning("Task %s failed: %s", name, exc)
            return
        if then is None:
            return
        try:
            then(future.result())
        except Exception as exc:
            logger.error("Task %s result handler failed: %s", name, exc)

    def shutdown(self, wait: bool = False):
        self._executor.shutdown(wait=wait)
