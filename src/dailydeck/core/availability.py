"""Availability of catalog cards for today's deck - no I/O dependencies.

`is_available` is the single predicate used both when showing which cards can
be picked and when a card is actually inserted into the deck.
"""

import logging
from collections.abc import Iterable
from datetime import date

from .models import Card, Catalog, DeckEntry, RecurrenceType
from .recurrence import occurs_on

logger = logging.getLogger(__name__)


def usage_count(card_id: str, deck: Iterable[DeckEntry]) -> int:
    """Number of deck entries drawn from the given catalog card."""
    return sum(1 for entry in deck if entry.card_id == card_id)


def is_available(card: Card, deck: list[DeckEntry], on: date | None = None) -> bool:
    """
    Can another copy of this card be added to the deck?

    Pure function - no I/O.

    Args:
        card: Catalog card being considered
        deck: Current deck contents (not a cached or filtered view)
        on: Calendar date to evaluate scheduled cards for (defaults to today)
    """
    match card.recurrence_type:
        case RecurrenceType.ALWAYS:
            return True
        case RecurrenceType.ONCE:
            return usage_count(card.id, deck) == 0
        case RecurrenceType.LIMITED:
            return usage_count(card.id, deck) < card.effective_max_uses
        case RecurrenceType.SCHEDULED:
            if card.schedule is None:
                logger.warning(f"Scheduled card {card.id} has no schedule config")
                return False
            # No usage cap once the rule fires
            return occurs_on(card.schedule, on or date.today())
    return False


def available_cards(
    cards: Iterable[Card],
    deck: list[DeckEntry],
    on: date | None = None,
) -> list[Card]:
    """Filter cards to those that can still be added to the deck."""
    on = on or date.today()
    return [c for c in cards if is_available(c, deck, on)]


def available_catalog(
    catalog: Catalog,
    deck: list[DeckEntry],
    on: date | None = None,
) -> Catalog:
    """Per-category view of the cards that can still be added, order preserved."""
    on = on or date.today()
    return {key: available_cards(cards, deck, on) for key, cards in catalog.items()}
