"""
tests/test_progress_channel.py

Coalescing, ordering and cancellation behaviour of the progress channel.
"""

from __future__ import annotations

import threading
import time
from decimal import Decimal

import pytest

from app.domain.score_import import ImportPhase, ImportResult, ProgressSnapshot
from app.services.progress_channel import DiscardingProgressSink, ProgressChannel


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def snap(phase: ImportPhase, processed: int = 0, total: int = 10) -> ProgressSnapshot:
    final = ImportResult(total, processed, 0, 0) if phase is ImportPhase.COMPLETE else None
    return ProgressSnapshot(
        phase=phase,
        total_rows=total,
        processed_rows=processed,
        success_count=processed,
        final_result=final,
    )


def drain(channel: ProgressChannel) -> list[ProgressSnapshot]:
    delivered = []
    while (snapshot := channel.get(timeout=0.01)) is not None:
        delivered.append(snapshot)
    return delivered


# ---------------------------------------------------------------------------
# Snapshot contract
# ---------------------------------------------------------------------------


class TestProgressSnapshot:
    def test_percent_complete_rounds_to_one_decimal(self) -> None:
        assert snap(ImportPhase.IMPORTING, processed=1, total=3).percent_complete == Decimal("33.3")

    def test_percent_complete_is_zero_without_rows(self) -> None:
        assert snap(ImportPhase.PARSING, processed=0, total=0).percent_complete == Decimal("0")

    def test_final_result_required_exactly_on_complete(self) -> None:
        with pytest.raises(ValueError):
            ProgressSnapshot(phase=ImportPhase.COMPLETE)
        with pytest.raises(ValueError):
            ProgressSnapshot(phase=ImportPhase.CANCELLED, final_result=ImportResult(0, 0, 0, 0))

    def test_to_dict_is_camel_case(self) -> None:
        payload = snap(ImportPhase.VALIDATING, processed=5).to_dict()

        assert payload["phase"] == "Validating"
        assert payload["processedRows"] == 5
        assert payload["percentComplete"] == 50.0
        assert payload["finalResult"] is None

    @pytest.mark.parametrize(
        ("phase", "terminal"),
        [
            (ImportPhase.PARSING, False),
            (ImportPhase.IMPORTING, False),
            (ImportPhase.COMPLETE, True),
            (ImportPhase.CANCELLED, True),
            (ImportPhase.FAILED, True),
        ],
    )
    def test_terminal_phases(self, phase: ImportPhase, terminal: bool) -> None:
        assert phase.is_terminal is terminal


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


class TestCoalescing:
    def test_phase_transitions_always_delivered(self) -> None:
        channel = ProgressChannel(every_rows=100, interval_seconds=60, clock=FakeClock())

        for snapshot in (
            snap(ImportPhase.PARSING),
            snap(ImportPhase.VALIDATING),
            snap(ImportPhase.IMPORTING, processed=1),
            snap(ImportPhase.COMPLETE, processed=10),
        ):
            assert channel.publish(snapshot) is True

        assert [s.phase for s in drain(channel)] == [
            ImportPhase.PARSING,
            ImportPhase.VALIDATING,
            ImportPhase.IMPORTING,
            ImportPhase.COMPLETE,
        ]

    def test_row_updates_coalesced_by_row_count(self) -> None:
        channel = ProgressChannel(every_rows=3, interval_seconds=60, clock=FakeClock())
        channel.publish(snap(ImportPhase.VALIDATING))

        for processed in range(1, 8):
            channel.publish(snap(ImportPhase.VALIDATING, processed=processed))

        assert [s.processed_rows for s in drain(channel)] == [0, 3, 6]

    def test_row_updates_released_by_elapsed_time(self) -> None:
        clock = FakeClock()
        channel = ProgressChannel(every_rows=100, interval_seconds=0.5, clock=clock)
        channel.publish(snap(ImportPhase.VALIDATING))

        assert channel.publish(snap(ImportPhase.VALIDATING, processed=1)) is False
        clock.now = 0.6
        assert channel.publish(snap(ImportPhase.VALIDATING, processed=2)) is True

    def test_delivered_rows_never_decrease(self) -> None:
        channel = ProgressChannel(every_rows=1)
        channel.publish(snap(ImportPhase.VALIDATING, processed=4))

        with pytest.raises(ValueError):
            channel.publish(snap(ImportPhase.VALIDATING, processed=3))

    def test_phase_never_regresses(self) -> None:
        channel = ProgressChannel()
        channel.publish(snap(ImportPhase.IMPORTING, processed=1))

        with pytest.raises(ValueError, match="regress"):
            channel.publish(snap(ImportPhase.VALIDATING, processed=2))

    def test_nothing_after_terminal(self) -> None:
        channel = ProgressChannel()
        channel.publish(snap(ImportPhase.CANCELLED, processed=2))

        assert channel.terminal_published is True
        with pytest.raises(ValueError):
            channel.publish(snap(ImportPhase.CANCELLED, processed=2))


class TestCancellation:
    def test_cancel_sets_flag(self) -> None:
        channel = ProgressChannel()
        assert channel.cancelled is False

        channel.cancel()

        assert channel.cancelled is True

    def test_blocked_producer_gives_up_after_cancel(self) -> None:
        channel = ProgressChannel(capacity=1, every_rows=1, poll_seconds=0.01)
        channel.publish(snap(ImportPhase.VALIDATING, processed=0))
        outcome: list[bool] = []

        producer = threading.Thread(
            target=lambda: outcome.append(channel.publish(snap(ImportPhase.VALIDATING, processed=1)))
        )
        producer.start()
        time.sleep(0.05)
        channel.cancel()
        producer.join(timeout=2)

        assert not producer.is_alive()
        assert outcome == [False]

    def test_iter_snapshots_stops_at_terminal(self) -> None:
        channel = ProgressChannel(every_rows=1)
        channel.publish(snap(ImportPhase.VALIDATING))
        channel.publish(snap(ImportPhase.IMPORTING, processed=1))
        channel.publish(snap(ImportPhase.COMPLETE, processed=10))

        phases = [s.phase for s in channel.iter_snapshots(timeout=0.01)]

        assert phases[-1] is ImportPhase.COMPLETE
        assert len(phases) == 3


class TestDiscardingProgressSink:
    def test_drops_snapshots_but_honours_cancel(self) -> None:
        sink = DiscardingProgressSink()

        assert sink.publish(snap(ImportPhase.PARSING)) is False
        sink.cancel()
        assert sink.cancelled is True
