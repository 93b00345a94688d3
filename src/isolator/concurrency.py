"""
Batch fan-out and cooperative cancellation.

Each batch phase of an isolation run (existence checks, capsule creation,
file writing, manifest snapshots) runs one independent task per component.
run_parallel executes such a batch on a thread pool and returns results in
input order. The first exception raised by a task propagates to the caller.

Cancellation is cooperative: the token is checked at phase boundaries and
before each batch item starts. Items already running are never interrupted.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from isolator.errors import IsolationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class CancellationToken:
    """
    Cooperative cancellation signal shared by all phases of one run.

    Usage:
        token = CancellationToken()
        # from another thread
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, phase: str) -> None:
        """Raise IsolationCancelledError if cancel() has been called."""
        if self._event.is_set():
            logger.info("isolation cancelled before %s", phase)
            raise IsolationCancelledError(phase=phase)


def run_parallel(
    func: Callable[[T], R],
    items: Iterable[T],
    phase: str,
    cancel_token: CancellationToken | None = None,
    max_workers: int | None = None,
) -> list[R]:
    """
    Run func on every item concurrently.

    Args:
        func: Task applied to each item
        items: Inputs, one task per item
        phase: Phase name used in cancellation errors and logs
        cancel_token: Checked before each item starts
        max_workers: Thread pool size (None = executor default)

    Returns:
        Results in the same order as items
    """
    items = list(items)
    if not items:
        return []

    def guarded(item: T) -> R:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(phase)
        return func(item)

    logger.debug("%s: running %d tasks", phase, len(items))
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"isolator-{phase}") as executor:
        return list(executor.map(guarded, items))
