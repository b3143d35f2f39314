"""Tests for drag-and-drop transitions."""

from datetime import date, datetime

import pytest

from dailydeck.core.availability import is_available
from dailydeck.core.deck import new_entry
from dailydeck.core.models import Card, RecurrenceType
from dailydeck.core.transitions import (
    DECK,
    MoveRequest,
    TransitionKind,
    add_to_deck,
    apply_move,
)


@pytest.fixture
def today():
    return date(2024, 1, 15)


@pytest.fixture
def now():
    return datetime(2024, 1, 15, 9, 30)


@pytest.fixture
def catalog():
    return {
        "structure": [
            Card(id="plan", title="Plan the day"),
            Card(id="review", title="Weekly review", recurrence_type=RecurrenceType.ONCE),
        ],
        "upkeep": [
            Card(id="dishes", title="Dishes", recurrence_type=RecurrenceType.LIMITED, max_uses=2),
        ],
        "play": [Card(id="guitar", title="Guitar")],
        "default": [],
    }


@pytest.fixture
def deck(catalog):
    return [
        new_entry(catalog["structure"][0], "structure"),
        new_entry(catalog["upkeep"][0], "upkeep"),
        new_entry(catalog["play"][0], "play"),
    ]


class TestNoOps:
    def test_dropped_in_place(self, catalog, deck, today):
        request = MoveRequest(DECK, DECK, deck[1].instance_id, 1, 1)
        result = apply_move(catalog, deck, request, on=today)
        assert result.changed is False
        assert result.kind is TransitionKind.NOOP
        assert result.catalog == catalog
        assert result.deck == deck

    def test_dropped_in_place_in_category(self, catalog, deck, today):
        request = MoveRequest("structure", "structure", "plan", 0, 0)
        result = apply_move(catalog, deck, request, on=today)
        assert result.changed is False
        assert result.catalog == catalog

    @pytest.mark.parametrize(
        "source,destination",
        [("nowhere", DECK), (DECK, "nowhere"), ("structure", "bogus")],
    )
    def test_unknown_location(self, catalog, deck, today, source, destination):
        request = MoveRequest(source, destination, "plan", 0, 0)
        result = apply_move(catalog, deck, request, on=today)
        assert result.changed is False
        assert "Unknown location" in result.reason

    def test_missing_card(self, catalog, deck, today):
        result = apply_move(catalog, deck, MoveRequest("play", DECK, "ghost", 0, 0), on=today)
        assert result.changed is False
        assert result.deck is deck

    def test_destination_out_of_range(self, catalog, deck, today):
        result = apply_move(catalog, deck, MoveRequest("play", DECK, "guitar", 0, 99), on=today)
        assert result.changed is False

    def test_negative_destination(self, catalog, deck, today):
        request = MoveRequest(DECK, DECK, deck[0].instance_id, 0, -1)
        assert apply_move(catalog, deck, request, on=today).changed is False

    def test_unknown_deck_entry(self, catalog, deck, today):
        result = apply_move(catalog, deck, MoveRequest(DECK, "play", "ghost", 0, 0), on=today)
        assert result.changed is False
        assert len(result.deck) == 3


class TestReorderDeck:
    def test_moves_entry(self, catalog, deck, today):
        ids = [e.instance_id for e in deck]
        request = MoveRequest(DECK, DECK, ids[0], 0, 2)

        result = apply_move(catalog, deck, request, on=today)

        assert result.kind is TransitionKind.REORDER_DECK
        assert [e.instance_id for e in result.deck] == [ids[1], ids[2], ids[0]]
        assert result.catalog is catalog

    def test_input_not_mutated(self, catalog, deck, today):
        before = list(deck)
        apply_move(catalog, deck, MoveRequest(DECK, DECK, deck[2].instance_id, 2, 0), on=today)
        assert deck == before

    def test_stale_index_resolved_by_identity(self, catalog, deck, today):
        ids = [e.instance_id for e in deck]
        # Source index says 1 but the dragged entry is really at 2
        request = MoveRequest(DECK, DECK, ids[2], 1, 0)

        result = apply_move(catalog, deck, request, on=today)

        assert [e.instance_id for e in result.deck] == [ids[2], ids[0], ids[1]]


class TestAddToDeck:
    def test_adds_tagged_copy(self, catalog, deck, today, now):
        request = MoveRequest("play", DECK, "guitar", 0, 1)

        result = apply_move(catalog, deck, request, on=today, now=now)

        assert result.kind is TransitionKind.ADD_TO_DECK
        assert len(result.deck) == 4
        added = result.deck[1]
        assert added.card_id == "guitar"
        assert added.source_category == "play"
        assert added.added_at == now
        assert added is result.entry
        assert added.instance_id not in {e.instance_id for e in deck}

    def test_catalog_untouched(self, catalog, deck, today):
        result = apply_move(catalog, deck, MoveRequest("play", DECK, "guitar", 0, 0), on=today)
        assert result.catalog is catalog
        assert [c.id for c in result.catalog["play"]] == ["guitar"]

    def test_append_at_end(self, catalog, deck, today):
        result = apply_move(catalog, deck, MoveRequest("structure", DECK, "review", 1, 3), on=today)
        assert result.deck[-1].card_id == "review"

    def test_once_card_rejected_second_time(self, catalog, deck, today):
        first = apply_move(catalog, deck, MoveRequest("structure", DECK, "review", 1, 0), on=today)
        second = apply_move(catalog, first.deck, MoveRequest("structure", DECK, "review", 1, 0), on=today)
        assert first.changed is True
        assert second.changed is False
        assert "not available" in second.reason

    def test_limited_cap_rechecked_at_commit(self, catalog, deck, today):
        dishes = catalog["upkeep"][0]
        # Display was computed against the original deck (one copy): looks available
        assert is_available(dishes, deck, today) is True

        # A rapid second drag already filled the cap before this one lands
        filled = apply_move(catalog, deck, MoveRequest("upkeep", DECK, "dishes", 0, 0), on=today)
        assert filled.changed is True

        late = apply_move(catalog, filled.deck, MoveRequest("upkeep", DECK, "dishes", 0, 0), on=today)
        assert late.changed is False
        assert late.deck is filled.deck

    def test_add_to_deck_appends(self, catalog, deck, today):
        result = add_to_deck(catalog, deck, "guitar", "play", on=today)
        assert result.changed is True
        assert result.deck[-1].card_id == "guitar"

    def test_add_to_deck_unknown_category(self, catalog, deck, today):
        result = add_to_deck(catalog, deck, "guitar", "nope", on=today)
        assert result.changed is False


class TestReturnToStack:
    def test_removes_entry(self, catalog, deck, today):
        target = deck[1]
        request = MoveRequest(DECK, "upkeep", target.instance_id, 1, 0)

        result = apply_move(catalog, deck, request, on=today)

        assert result.kind is TransitionKind.RETURN_TO_STACK
        assert target.instance_id not in [e.instance_id for e in result.deck]
        assert result.entry == target
        assert result.catalog is catalog

    def test_destination_category_irrelevant(self, catalog, deck, today):
        request = MoveRequest(DECK, "default", deck[0].instance_id, 0, 0)
        result = apply_move(catalog, deck, request, on=today)
        assert result.changed is True
        assert result.catalog["default"] == []


class TestReclassify:
    def test_moves_card_between_categories(self, catalog, deck, today):
        request = MoveRequest("structure", "play", "plan", 0, 0)

        result = apply_move(catalog, deck, request, on=today)

        assert result.kind is TransitionKind.RECLASSIFY
        assert [c.id for c in result.catalog["structure"]] == ["review"]
        assert [c.id for c in result.catalog["play"]] == ["plan", "guitar"]

    def test_retags_deck_copies(self, catalog, deck, today):
        deck = deck + [new_entry(catalog["structure"][0], "structure")]
        request = MoveRequest("structure", "default", "plan", 0, 0)

        result = apply_move(catalog, deck, request, on=today)

        tags = [e.source_category for e in result.deck if e.card_id == "plan"]
        assert tags == ["default", "default"]
        others = [e.source_category for e in result.deck if e.card_id != "plan"]
        assert others == ["upkeep", "play"]

    def test_original_catalog_unchanged(self, catalog, deck, today):
        apply_move(catalog, deck, MoveRequest("structure", "play", "plan", 0, 1), on=today)
        assert [c.id for c in catalog["structure"]] == ["plan", "review"]

    def test_destination_index_past_end(self, catalog, deck, today):
        result = apply_move(catalog, deck, MoveRequest("structure", "play", "plan", 0, 5), on=today)
        assert result.changed is False


class TestReorderCategory:
    def test_reorders_within_category(self, catalog, deck, today):
        request = MoveRequest("structure", "structure", "review", 1, 0)

        result = apply_move(catalog, deck, request, on=today)

        assert result.kind is TransitionKind.REORDER_CATEGORY
        assert [c.id for c in result.catalog["structure"]] == ["review", "plan"]
        assert result.deck is deck
