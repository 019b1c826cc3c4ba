"""
app/services/progress_channel.py

One-directional hand-off of ProgressSnapshot values from an import run to
whoever is watching it.

The producer (the coordinator, on its worker thread) publishes; a single
consumer (the SSE response, or a test) reads. The queue is bounded, so a slow
consumer applies back-pressure; a producer waiting on a full queue re-checks
the cancellation flag every poll interval and gives up once it is set.

Cancelling the channel is how a consumer stops a run: the coordinator checks
`cancelled` at every row boundary.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterator
from typing import Protocol

from app.domain.score_import import ImportPhase, ProgressSnapshot

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    @property
    def cancelled(self) -> bool:
        ...

    def publish(self, snapshot: ProgressSnapshot) -> bool:
        ...


class DiscardingProgressSink:
    """
    Sink for runs nobody watches (the one-shot import endpoint). Snapshots
    are dropped; cancellation still works.
    """

    def __init__(self) -> None:
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    def publish(self, snapshot: ProgressSnapshot) -> bool:
        return False


class ProgressChannel:
    """
    Bounded, coalescing snapshot channel for one import run.

    A snapshot is delivered when it changes the phase, when it is terminal,
    or when `every_rows` rows / `interval_seconds` have passed since the last
    delivered snapshot. Everything else is dropped, which bounds the cost of
    progress reporting on large files.
    """

    def __init__(
        self,
        *,
        capacity: int = 64,
        every_rows: int = 10,
        interval_seconds: float = 0.5,
        poll_seconds: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._queue: queue.Queue[ProgressSnapshot] = queue.Queue(maxsize=max(1, capacity))
        self._cancel_event = threading.Event()
        self._every_rows = max(1, every_rows)
        self._interval_seconds = max(0.0, interval_seconds)
        self._poll_seconds = max(0.01, poll_seconds)
        self._clock = clock
        self._last_phase: ImportPhase | None = None
        self._last_processed = 0
        self._last_sent_at: float | None = None
        self._terminal_published = False

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """
        Ask the producing run to stop at its next row boundary.
        """

        if not self._cancel_event.is_set():
            logger.info("Import progress channel cancelled by consumer")
        self._cancel_event.set()

    def get(self, timeout: float | None = None) -> ProgressSnapshot | None:
        """
        Next delivered snapshot, or None when nothing arrived within `timeout`.
        """

        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def iter_snapshots(self, *, timeout: float = 0.5) -> Iterator[ProgressSnapshot]:
        """
        Yield snapshots until the terminal one has been consumed.
        """

        while True:
            snapshot = self.get(timeout=timeout)
            if snapshot is None:
                if self.cancelled and not self._terminal_published:
                    return
                continue
            yield snapshot
            if snapshot.phase.is_terminal:
                return

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    @property
    def terminal_published(self) -> bool:
        return self._terminal_published

    def publish(self, snapshot: ProgressSnapshot) -> bool:
        """
        Offer a snapshot. Returns True when it was queued for the consumer.
        """

        if self._terminal_published:
            raise ValueError("Run already published its terminal snapshot.")
        if self._last_phase is not None and snapshot.phase.rank < self._last_phase.rank:
            raise ValueError(
                f"Phase cannot regress from {self._last_phase.value} to {snapshot.phase.value}."
            )
        if snapshot.processed_rows < self._last_processed:
            raise ValueError("processed_rows cannot decrease within a run.")

        if not self._should_deliver(snapshot):
            return False

        delivered = self._put(snapshot)
        if delivered:
            self._last_phase = snapshot.phase
            self._last_processed = snapshot.processed_rows
            self._last_sent_at = self._clock()
            self._terminal_published = snapshot.phase.is_terminal
            logger.debug(
                "Import progress phase=%s processed=%s/%s",
                snapshot.phase.value,
                snapshot.processed_rows,
                snapshot.total_rows,
            )
        return delivered

    def _should_deliver(self, snapshot: ProgressSnapshot) -> bool:
        if snapshot.phase.is_terminal or snapshot.phase is not self._last_phase:
            return True
        if snapshot.processed_rows - self._last_processed >= self._every_rows:
            return True
        if self._last_sent_at is None:
            return True
        return self._clock() - self._last_sent_at >= self._interval_seconds

    def _put(self, snapshot: ProgressSnapshot) -> bool:
        while True:
            if self.cancelled and not snapshot.phase.is_terminal:
                return False
            try:
                self._queue.put(snapshot, timeout=self._poll_seconds)
                return True
            except queue.Full:
                if self.cancelled:
                    return False
