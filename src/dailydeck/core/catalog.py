"""Catalog editing helpers - no I/O dependencies."""

import uuid
from dataclasses import replace
from datetime import datetime

from .models import CATEGORY_KEYS, Card, Catalog, RecurrenceType, ScheduleConfig


def empty_catalog() -> Catalog:
    return {key: [] for key in CATEGORY_KEYS}


def is_category(key: str) -> bool:
    return key in CATEGORY_KEYS


def find_card(catalog: Catalog, card_id: str) -> tuple[str, int, Card] | None:
    """Locate a card by id. Returns (category, index, card) or None."""
    for category, cards in catalog.items():
        for i, card in enumerate(cards):
            if card.id == card_id:
                return category, i, card
    return None


def new_card(
    category: str,
    title: str,
    description: str = "",
    duration: int | None = None,
    recurrence_type: RecurrenceType = RecurrenceType.ALWAYS,
    schedule: ScheduleConfig | None = None,
    max_uses: int | None = None,
    now: datetime | None = None,
) -> Card:
    """
    Build a catalog card with a fresh id.

    max_uses is kept only for LIMITED cards and schedule only for SCHEDULED
    cards, so a stored card never carries settings for another policy.
    """
    if recurrence_type is RecurrenceType.SCHEDULED and schedule is None:
        raise ValueError("scheduled cards need a recurrence rule")
    return Card(
        id=f"{category}-{uuid.uuid4().hex[:12]}",
        title=title,
        description=description,
        duration=duration,
        recurrence_type=recurrence_type,
        schedule=schedule if recurrence_type is RecurrenceType.SCHEDULED else None,
        max_uses=(max_uses or 1) if recurrence_type is RecurrenceType.LIMITED else None,
        created_at=now or datetime.now(),
    )


def add_card(catalog: Catalog, category: str, card: Card) -> Catalog:
    """Append a card to a category."""
    if not is_category(category):
        raise ValueError(f"Unknown category: {category}")
    return {**catalog, category: [*catalog.get(category, []), card]}


def update_card(catalog: Catalog, card_id: str, **updates) -> Catalog:
    """Replace fields on a card wherever it lives. Unknown ids are ignored."""
    found = find_card(catalog, card_id)
    if found is None:
        return dict(catalog)
    category, index, card = found
    cards = list(catalog[category])
    cards[index] = replace(card, **updates)
    return {**catalog, category: cards}


def delete_card(catalog: Catalog, card_id: str) -> Catalog:
    """Remove a card from the catalog. Deck copies are left to the caller."""
    return {key: [c for c in cards if c.id != card_id] for key, cards in catalog.items()}
