"""Deck entry creation and list operations - no I/O dependencies.

All functions return new lists; the deck passed in is never modified.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

from .models import Card, Catalog, DeckEntry


@dataclass
class DeckStats:
    """Progress numbers for the current deck."""

    total_cards: int
    completed_cards: int
    remaining_cards: int
    completion_percentage: int
    total_duration: int  # minutes
    completed_duration: int
    remaining_duration: int
    time_spent: int  # seconds


def new_instance_id() -> str:
    return uuid.uuid4().hex


def new_entry(card: Card, source_category: str, now: datetime | None = None) -> DeckEntry:
    """Create a fresh deck copy of a catalog card."""
    return DeckEntry(
        instance_id=new_instance_id(),
        card=card,
        source_category=source_category,
        added_at=now or datetime.now(),
    )


def index_of(deck: list[DeckEntry], instance_id: str, hint: int | None = None) -> int | None:
    """
    Position of the entry with this instance id.

    `hint` is checked first so the common case (index still accurate) is O(1).
    """
    if hint is not None and 0 <= hint < len(deck) and deck[hint].instance_id == instance_id:
        return hint
    for i, entry in enumerate(deck):
        if entry.instance_id == instance_id:
            return i
    return None


def insert_at(deck: list[DeckEntry], index: int, entry: DeckEntry) -> list[DeckEntry]:
    new_deck = list(deck)
    new_deck.insert(index, entry)
    return new_deck


def remove_at(deck: list[DeckEntry], index: int) -> list[DeckEntry]:
    """Remove the entry at index. Out-of-range indices leave the deck as is."""
    if not 0 <= index < len(deck):
        return list(deck)
    return deck[:index] + deck[index + 1 :]


def remove_entry(deck: list[DeckEntry], instance_id: str) -> list[DeckEntry]:
    return [e for e in deck if e.instance_id != instance_id]


def remove_card(deck: list[DeckEntry], card_id: str) -> list[DeckEntry]:
    """Remove every copy of a catalog card."""
    return [e for e in deck if e.card_id != card_id]


def clear_deck() -> list[DeckEntry]:
    return []


def update_entry(deck: list[DeckEntry], index: int, **updates) -> list[DeckEntry]:
    """Replace fields on the entry at index."""
    if not 0 <= index < len(deck):
        return list(deck)
    new_deck = list(deck)
    new_deck[index] = new_deck[index].with_updates(**updates)
    return new_deck


def retag_entries(deck: list[DeckEntry], card_id: str, category: str) -> list[DeckEntry]:
    """Point every copy of a card at a new source category."""
    return [
        e.with_updates(source_category=category) if e.card_id == card_id else e
        for e in deck
    ]


def refresh_entries(deck: list[DeckEntry], catalog: Catalog) -> list[DeckEntry]:
    """
    Re-sync entry card snapshots with the catalog after cards were edited.

    Entries whose card no longer exists keep their last snapshot.
    """
    by_id = {card.id: card for cards in catalog.values() for card in cards}
    return [
        e.with_updates(card=by_id[e.card_id]) if e.card_id in by_id and by_id[e.card_id] != e.card else e
        for e in deck
    ]


def deck_stats(deck: list[DeckEntry]) -> DeckStats:
    """
    Summarise deck progress.

    Durations are the cards' estimates in minutes; time_spent is tracked seconds
    on completed entries only.
    """
    total = len(deck)
    completed = [e for e in deck if e.completed]
    total_duration = sum(e.card.duration or 0 for e in deck)
    completed_duration = sum(e.card.duration or 0 for e in completed)

    return DeckStats(
        total_cards=total,
        completed_cards=len(completed),
        remaining_cards=total - len(completed),
        completion_percentage=round(len(completed) / total * 100) if total else 0,
        total_duration=total_duration,
        completed_duration=completed_duration,
        remaining_duration=total_duration - completed_duration,
        time_spent=sum(e.time_spent for e in completed),
    )
