"""
Sync Dispatcher

Background task queue for remote work. Capture calls submit and return
immediately; whatever a task raises is logged and kept in a bounded failure
channel instead of reaching the caller. Failed tasks are not retried.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, List, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class SyncFailure:
    """A remote task that raised."""

    description: str
    error: str
    failed_at: datetime = field(default_factory=lambda: datetime.now().astimezone())


class SyncDispatcher:
    """Single-worker queue for fire-and-forget remote operations."""

    def __init__(self, max_failures: int = 100):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-sync")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._failures: Deque[SyncFailure] = deque(maxlen=max_failures)
        self._closed = False

    def submit(self, fn: Callable[..., Any], *args: Any, description: str = "", **kwargs: Any) -> Optional[Future]:
        """Queue ``fn(*args, **kwargs)`` on the worker.

        Returns:
            The task's future, or None if the dispatcher is shut down
        """
        description = description or getattr(fn, "__name__", "remote task")
        with self._lock:
            if self._closed:
                logger.warning(f"Dispatcher closed, dropping {description}")
                return None
            try:
                future = self._executor.submit(self._run, fn, description, args, kwargs)
            except RuntimeError as e:
                logger.warning(f"Could not queue {description}: {e}")
                return None
            self._pending.add(future)

        future.add_done_callback(self._on_done)
        return future

    def _run(self, fn: Callable[..., Any], description: str, args: tuple, kwargs: dict) -> Any:
        # Failures are recorded before the future completes so flush() sees them
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            logger.error(f"Remote task {description} failed: {e}")
            self._failures.append(SyncFailure(description=description, error=str(e)))
            return None

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    @property
    def failures(self) -> List[SyncFailure]:
        return list(self._failures)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued tasks to finish.

        Returns:
            True if nothing is left pending
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Finish queued tasks and stop the worker."""
        self.flush(timeout)
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=timeout is None)
