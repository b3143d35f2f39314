"""Elapsed-time tracking for the card being worked on - no I/O dependencies.

Elapsed time is always derived from the stored start timestamp:

    elapsed = accumulated_seconds + (now - started_at)

so a tick that arrives late (suspended laptop, backgrounded app) still reads
the right total.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from .models import parse_timestamp


@dataclass(frozen=True)
class TimerState:
    """Timer for a single deck entry. Only one timer runs at a time."""

    entry_id: str | None = None
    started_at: datetime | None = None
    accumulated_seconds: int = 0

    @property
    def is_running(self) -> bool:
        return self.started_at is not None

    def to_dict(self) -> dict:
        return {
            "entryId": self.entry_id,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "accumulatedSeconds": self.accumulated_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "TimerState":
        data = data or {}
        return cls(
            entry_id=data.get("entryId"),
            started_at=parse_timestamp(data.get("startedAt")),
            accumulated_seconds=int(data.get("accumulatedSeconds") or 0),
        )


def elapsed(state: TimerState, now: datetime | None = None) -> int:
    """Total tracked seconds, including the running session."""
    if not state.is_running:
        return state.accumulated_seconds
    now = now or datetime.now()
    running = int((now - state.started_at).total_seconds())
    return state.accumulated_seconds + max(running, 0)


def start(
    state: TimerState,
    entry_id: str,
    now: datetime | None = None,
    resume_from: int = 0,
) -> TimerState:
    """
    Start (or resume) timing an entry.

    A different entry starts from resume_from, the seconds already tracked on
    it. Use switch() to keep the outgoing entry's total.
    """
    now = now or datetime.now()
    if state.entry_id == entry_id:
        if state.is_running:
            return state
        return replace(state, started_at=now)
    return TimerState(entry_id=entry_id, started_at=now, accumulated_seconds=resume_from)


def switch(
    state: TimerState,
    entry_id: str,
    now: datetime | None = None,
    resume_from: int = 0,
) -> tuple[TimerState, str | None, int]:
    """
    Move the timer to an entry, handing back what the outgoing entry tracked.

    Returns: (new state, outgoing entry id or None, outgoing total seconds)
    """
    now = now or datetime.now()
    if state.entry_id is None or state.entry_id == entry_id:
        return start(state, entry_id, now, resume_from), None, 0
    return start(TimerState(), entry_id, now, resume_from), state.entry_id, elapsed(state, now)


def pause(state: TimerState, now: datetime | None = None) -> TimerState:
    """Fold the running session into accumulated_seconds and stop the clock."""
    if not state.is_running:
        return state
    return replace(state, started_at=None, accumulated_seconds=elapsed(state, now))


def stop(state: TimerState, now: datetime | None = None) -> tuple[TimerState, int]:
    """
    Stop timing and clear the selection.

    Returns: (cleared state, final seconds for the entry)
    """
    return TimerState(), elapsed(state, now)
