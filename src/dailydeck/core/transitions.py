"""Drag-and-drop transitions between catalog categories and the deck.

Pure functions - no I/O. A move either produces a whole new (catalog, deck)
pair or is rejected as a no-op with a reason; nothing here raises for a bad
request, since drop events can arrive stale or out of order.

Transition table (source -> destination):

    deck     -> deck       reorder the deck
    category -> deck       add a copy of the card (availability re-checked)
    deck     -> category   return the copy to its stack (drop it from the deck)
    category -> other      move the card and re-tag its deck copies
    category -> same       reorder within the category
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from .availability import is_available
from .catalog import is_category
from .deck import index_of, insert_at, new_entry, remove_at, retag_entries
from .models import Catalog, DeckEntry

logger = logging.getLogger(__name__)

DECK = "deck"


@dataclass(frozen=True)
class MoveRequest:
    """
    A completed drop gesture.

    For moves out of the deck, dragged_id is the entry's instance id; for moves
    out of a category it is the catalog card id.
    """

    source: str
    destination: str
    dragged_id: str
    source_index: int
    destination_index: int


class TransitionKind(Enum):
    REORDER_DECK = "reorder_deck"
    ADD_TO_DECK = "add_to_deck"
    RETURN_TO_STACK = "return_to_stack"
    RECLASSIFY = "reclassify"
    REORDER_CATEGORY = "reorder_category"
    NOOP = "noop"


@dataclass
class Transition:
    """Result of applying a move: the next state plus what happened."""

    catalog: Catalog
    deck: list[DeckEntry]
    kind: TransitionKind
    reason: str | None = None
    entry: DeckEntry | None = None

    @property
    def changed(self) -> bool:
        return self.kind is not TransitionKind.NOOP


def _noop(catalog: Catalog, deck: list[DeckEntry], reason: str) -> Transition:
    logger.debug(f"Move ignored: {reason}")
    return Transition(catalog=catalog, deck=deck, kind=TransitionKind.NOOP, reason=reason)


def _card_index(cards: list, card_id: str, hint: int | None = None) -> int | None:
    if hint is not None and 0 <= hint < len(cards) and cards[hint].id == card_id:
        return hint
    for i, card in enumerate(cards):
        if card.id == card_id:
            return i
    return None


def apply_move(
    catalog: Catalog,
    deck: list[DeckEntry],
    request: MoveRequest,
    on: date | None = None,
    now: datetime | None = None,
) -> Transition:
    """
    Apply a drop gesture to the current state.

    Args:
        catalog: Current catalog
        deck: Current deck
        request: The drop to apply
        on: Calendar date for availability of scheduled cards (defaults to today)
        now: Timestamp recorded on newly added entries

    Returns:
        Transition with the next catalog and deck. No-op transitions carry the
        unchanged inputs and a reason.
    """
    source, destination = request.source, request.destination

    for location in (source, destination):
        if location != DECK and not is_category(location):
            return _noop(catalog, deck, f"Unknown location: {location!r}")

    if source == destination and request.source_index == request.destination_index:
        return _noop(catalog, deck, "Dropped in place")

    if source == DECK and destination == DECK:
        return _reorder_deck(catalog, deck, request)
    if destination == DECK:
        return _add_from_category(catalog, deck, source, request.dragged_id, request.destination_index, on, now)
    if source == DECK:
        return _return_to_stack(catalog, deck, request)
    if source == destination:
        return _reorder_category(catalog, deck, request)
    return _reclassify(catalog, deck, request)


def add_to_deck(
    catalog: Catalog,
    deck: list[DeckEntry],
    card_id: str,
    category: str,
    index: int | None = None,
    on: date | None = None,
    now: datetime | None = None,
) -> Transition:
    """Add a copy of a catalog card without a drag (appends by default)."""
    if not is_category(category):
        return _noop(catalog, deck, f"Unknown location: {category!r}")
    destination_index = len(deck) if index is None else index
    return _add_from_category(catalog, deck, category, card_id, destination_index, on, now)


def _reorder_deck(catalog: Catalog, deck: list[DeckEntry], request: MoveRequest) -> Transition:
    index = index_of(deck, request.dragged_id, hint=request.source_index)
    if index is None:
        return _noop(catalog, deck, f"Deck entry {request.dragged_id} not found")
    target = request.destination_index
    if not 0 <= target < len(deck):
        return _noop(catalog, deck, f"Destination index {target} out of range")
    if index == target:
        return _noop(catalog, deck, "Dropped in place")

    entry = deck[index]
    new_deck = insert_at(remove_at(deck, index), target, entry)
    return Transition(catalog=catalog, deck=new_deck, kind=TransitionKind.REORDER_DECK, entry=entry)


def _add_from_category(
    catalog: Catalog,
    deck: list[DeckEntry],
    category: str,
    card_id: str,
    destination_index: int,
    on: date | None,
    now: datetime | None,
) -> Transition:
    cards = catalog.get(category, [])
    index = _card_index(cards, card_id)
    if index is None:
        return _noop(catalog, deck, f"Card {card_id} not in {category}")
    if not 0 <= destination_index <= len(deck):
        return _noop(catalog, deck, f"Destination index {destination_index} out of range")

    card = cards[index]
    # Checked against the live deck, not whatever list was on screen
    if not is_available(card, deck, on):
        return _noop(catalog, deck, f"Card {card_id} is not available")

    entry = new_entry(card, category, now)
    new_deck = insert_at(deck, destination_index, entry)
    return Transition(catalog=catalog, deck=new_deck, kind=TransitionKind.ADD_TO_DECK, entry=entry)


def _return_to_stack(catalog: Catalog, deck: list[DeckEntry], request: MoveRequest) -> Transition:
    index = index_of(deck, request.dragged_id, hint=request.source_index)
    if index is None:
        return _noop(catalog, deck, f"Deck entry {request.dragged_id} not found")

    entry = deck[index]
    return Transition(
        catalog=catalog,
        deck=remove_at(deck, index),
        kind=TransitionKind.RETURN_TO_STACK,
        entry=entry,
    )


def _reorder_category(catalog: Catalog, deck: list[DeckEntry], request: MoveRequest) -> Transition:
    cards = catalog[request.source]
    index = _card_index(cards, request.dragged_id, hint=request.source_index)
    if index is None:
        return _noop(catalog, deck, f"Card {request.dragged_id} not in {request.source}")
    target = request.destination_index
    if not 0 <= target < len(cards):
        return _noop(catalog, deck, f"Destination index {target} out of range")
    if index == target:
        return _noop(catalog, deck, "Dropped in place")

    new_cards = list(cards)
    card = new_cards.pop(index)
    new_cards.insert(target, card)
    return Transition(
        catalog={**catalog, request.source: new_cards},
        deck=deck,
        kind=TransitionKind.REORDER_CATEGORY,
    )


def _reclassify(catalog: Catalog, deck: list[DeckEntry], request: MoveRequest) -> Transition:
    source_cards = catalog[request.source]
    dest_cards = catalog[request.destination]
    index = _card_index(source_cards, request.dragged_id, hint=request.source_index)
    if index is None:
        return _noop(catalog, deck, f"Card {request.dragged_id} not in {request.source}")
    target = request.destination_index
    if not 0 <= target <= len(dest_cards):
        return _noop(catalog, deck, f"Destination index {target} out of range")

    new_source = list(source_cards)
    card = new_source.pop(index)
    new_dest = list(dest_cards)
    new_dest.insert(target, card)

    return Transition(
        catalog={**catalog, request.source: new_source, request.destination: new_dest},
        # Copies already in the deck must return to the card's new stack
        deck=retag_entries(deck, card.id, request.destination),
        kind=TransitionKind.RECLASSIFY,
    )
