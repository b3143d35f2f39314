"""Completion ordering for the deck - no I/O dependencies.

The deck is read front to back as "what's next". Undone cards always rejoin
the queue at the first incomplete position so they are never buried among
completed ones.
"""

import logging
from dataclasses import fields
from datetime import datetime

from .deck import insert_at, remove_at
from .models import DeckEntry

logger = logging.getLogger(__name__)

_ENTRY_FIELDS = {f.name for f in fields(DeckEntry)} - {"instance_id", "card"}


def first_incomplete_index(deck: list[DeckEntry]) -> int:
    """Index of the first entry not completed, or len(deck) if all are."""
    for i, entry in enumerate(deck):
        if not entry.completed:
            return i
    return len(deck)


def _apply_extra(entry: DeckEntry, extra_updates: dict | None) -> DeckEntry:
    """Entry fields are replaced directly; anything else lands in entry.extra."""
    if not extra_updates:
        return entry
    direct = {k: v for k, v in extra_updates.items() if k in _ENTRY_FIELDS}
    other = {k: v for k, v in extra_updates.items() if k not in _ENTRY_FIELDS}
    if other:
        direct["extra"] = {**entry.extra, **direct.get("extra", {}), **other}
    return entry.with_updates(**direct)


def set_completion(
    deck: list[DeckEntry],
    index: int,
    completed: bool,
    extra_updates: dict | None = None,
    *,
    time_spent: int | None = None,
    move_to_boundary: bool = False,
    now: datetime | None = None,
) -> list[DeckEntry]:
    """
    Mark the entry at index complete or incomplete and return the new deck.

    Completing stamps completed_at and the tracked seconds. The entry keeps its
    position unless move_to_boundary is set, in which case it moves to the end
    of the completed run at the front of the deck.

    Marking incomplete clears the completion fields and moves the entry to the
    first incomplete position of the remaining deck.
    """
    if not 0 <= index < len(deck):
        logger.debug(f"Completion change ignored: index {index} out of range")
        return list(deck)

    entry = deck[index]

    if completed:
        updated = entry.with_updates(
            completed=True,
            completed_at=now or datetime.now(),
            time_spent=entry.time_spent if time_spent is None else time_spent,
        )
        updated = _apply_extra(updated, extra_updates)
        if not move_to_boundary:
            new_deck = list(deck)
            new_deck[index] = updated
            return new_deck

        boundary = first_incomplete_index(deck)
        target = boundary - 1 if index < boundary else boundary
        return insert_at(remove_at(deck, index), target, updated)

    updated = entry.with_updates(completed=False, completed_at=None, time_spent=0)
    updated = _apply_extra(updated, extra_updates)
    remaining = remove_at(deck, index)
    return insert_at(remaining, first_incomplete_index(remaining), updated)


def focused_index(deck: list[DeckEntry], pinned: int | None = None) -> int | None:
    """
    Index of the card to show large.

    Defaults to the first incomplete card; a valid pinned index wins. Returns
    None for an empty deck, and the last index when every card is done.
    """
    if not deck:
        return None
    if pinned is not None and 0 <= pinned < len(deck):
        return pinned
    return min(first_incomplete_index(deck), len(deck) - 1)
