"""Workflow layer between the CLI and the functional core.

Each command loads the state it needs from the store, asks the core for the
next state, and saves only the resources that changed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path

from .adapters.json_store import JsonFileStore
from .config import DATA_DIR, Config
from .core import timer
from .core.timer import TimerState
from .core.catalog import add_card, delete_card, find_card, new_card, update_card
from .core.day_completion import DayCompletion, DayCompletionResult, UserStreak, complete_day, streak_from_history
from .core.deck import (
    DeckStats,
    clear_deck,
    deck_stats,
    index_of,
    refresh_entries,
    remove_at,
    remove_card,
    update_entry,
)
from .core.models import (
    Card,
    Catalog,
    DeckEntry,
    RecurrenceType,
    ScheduleConfig,
    catalog_from_dict,
    catalog_to_dict,
    deck_from_list,
    deck_to_list,
)
from .core.ordering import set_completion
from .core.recurrence import today_in
from .core.templates import (
    Template,
    TemplateLoad,
    delete_template,
    find_template,
    load_template,
    rename_template,
    save_template,
)
from .core.transitions import MoveRequest, Transition, TransitionKind, add_to_deck, apply_move
from .ports.state_store import StateStore

logger = logging.getLogger(__name__)

CATALOG = "catalog"
DECK = "deck"
TEMPLATES = "templates"
HISTORY = "history"


@dataclass
class DeckState:
    """Everything the commands work on, as loaded from the store."""

    catalog: Catalog
    deck: list[DeckEntry] = field(default_factory=list)
    templates: list[Template] = field(default_factory=list)
    history: list[DayCompletion] = field(default_factory=list)
    streak: UserStreak = field(default_factory=UserStreak)
    timer: TimerState = field(default_factory=TimerState)
    deck_date: str = ""


def get_store(config: Config) -> JsonFileStore:
    """Resolve the data directory from config."""
    if config.data_dir:
        return JsonFileStore(Path(config.data_dir).expanduser())
    return JsonFileStore(DATA_DIR)


def today(config: Config) -> date:
    return today_in(config.timezone)


def load_state(store: StateStore) -> DeckState:
    """Load all resources. Missing documents load as empty."""
    deck_doc = store.load(DECK) or {}
    history_doc = store.load(HISTORY) or {}
    return DeckState(
        catalog=catalog_from_dict(store.load(CATALOG)),
        deck=deck_from_list(deck_doc.get("entries")),
        templates=[Template.from_dict(t) for t in store.load(TEMPLATES) or []],
        history=[DayCompletion.from_dict(c) for c in history_doc.get("completions", [])],
        streak=UserStreak.from_dict(history_doc.get("streak")),
        timer=TimerState.from_dict(deck_doc.get("timer")),
        deck_date=deck_doc.get("date", ""),
    )


def save_state(store: StateStore, state: DeckState, *keys: str) -> None:
    """Save the named resources (all of them if none are named)."""
    keys = keys or (CATALOG, DECK, TEMPLATES, HISTORY)
    for key in keys:
        match key:
            case "catalog":
                store.save(CATALOG, catalog_to_dict(state.catalog))
            case "deck":
                store.save(
                    DECK,
                    {
                        "date": state.deck_date,
                        "entries": deck_to_list(state.deck),
                        "timer": state.timer.to_dict(),
                    },
                )
            case "templates":
                store.save(TEMPLATES, [t.to_dict() for t in state.templates])
            case "history":
                store.save(
                    HISTORY,
                    {
                        "completions": [c.to_dict() for c in state.history],
                        "streak": state.streak.to_dict(),
                    },
                )
            case _:
                raise ValueError(f"Unknown resource: {key}")


# ============== Catalog ==============


def create_card(
    store: StateStore,
    category: str,
    title: str,
    description: str = "",
    duration: int | None = None,
    recurrence_type: RecurrenceType = RecurrenceType.ALWAYS,
    rrule: str | None = None,
    max_uses: int | None = None,
    timezone: str | None = None,
) -> Card:
    """Add a new card to a catalog category."""
    state = load_state(store)
    schedule = ScheduleConfig(rrule=rrule, timezone=timezone) if rrule else None
    card = new_card(
        category,
        title,
        description=description,
        duration=duration,
        recurrence_type=recurrence_type,
        schedule=schedule,
        max_uses=max_uses,
    )
    state.catalog = add_card(state.catalog, category, card)
    save_state(store, state, CATALOG)
    return card


def edit_card(store: StateStore, card_id: str, **updates) -> Card | None:
    """Update a catalog card; deck copies pick up the new title/duration."""
    state = load_state(store)
    if find_card(state.catalog, card_id) is None:
        return None
    state.catalog = update_card(state.catalog, card_id, **updates)
    state.deck = refresh_entries(state.deck, state.catalog)
    save_state(store, state, CATALOG, DECK)
    return find_card(state.catalog, card_id)[2]


def delete_card_everywhere(store: StateStore, card_id: str) -> bool:
    """Delete a catalog card and any copies of it in the deck."""
    state = load_state(store)
    if find_card(state.catalog, card_id) is None:
        return False
    state.catalog = delete_card(state.catalog, card_id)
    state.deck = remove_card(state.deck, card_id)
    save_state(store, state, CATALOG, DECK)
    return True


# ============== Deck ==============


def _touch(state: DeckState, config: Config) -> None:
    state.deck_date = today(config).isoformat()


def is_stale(state: DeckState, config: Config) -> bool:
    """Was the deck last built on an earlier day?"""
    return bool(state.deck_date) and state.deck_date != today(config).isoformat()


def move(store: StateStore, config: Config, request: MoveRequest) -> Transition:
    """Apply a drop gesture and persist the result if anything changed."""
    state = load_state(store)
    result = apply_move(state.catalog, state.deck, request, on=today(config))
    if not result.changed:
        return result

    state.catalog = result.catalog
    state.deck = result.deck
    _touch(state, config)
    save_state(store, state, CATALOG, DECK)
    return result


def add(store: StateStore, config: Config, card_id: str) -> Transition:
    """Append a copy of a catalog card to the deck."""
    state = load_state(store)
    found = find_card(state.catalog, card_id)
    if found is None:
        return Transition(
            catalog=state.catalog,
            deck=state.deck,
            kind=TransitionKind.NOOP,
            reason=f"Card {card_id} not in the catalog",
        )
    result = add_to_deck(state.catalog, state.deck, card_id, found[0], on=today(config))
    if result.changed:
        state.deck = result.deck
        _touch(state, config)
        save_state(store, state, DECK)
    return result


def remove(store: StateStore, index: int) -> DeckEntry | None:
    """Return the entry at index to its stack."""
    state = load_state(store)
    if not 0 <= index < len(state.deck):
        return None
    entry = state.deck[index]
    state.deck = remove_at(state.deck, index)
    if state.timer.entry_id == entry.instance_id:
        state.timer = TimerState()
    save_state(store, state, DECK)
    return entry


def clear(store: StateStore) -> None:
    state = load_state(store)
    state.deck = clear_deck()
    state.timer = TimerState()
    save_state(store, state, DECK)


def complete(
    store: StateStore,
    config: Config,
    index: int,
    now: datetime | None = None,
) -> DeckEntry | None:
    """
    Mark the entry at index complete.

    If the timer is tracking this entry its elapsed seconds become the entry's
    time spent and the timer is stopped.
    """
    now = now or datetime.now()
    state = load_state(store)
    if not 0 <= index < len(state.deck):
        return None

    entry = state.deck[index]
    time_spent = None
    if state.timer.entry_id == entry.instance_id:
        state.timer, time_spent = timer.stop(state.timer, now)

    state.deck = set_completion(
        state.deck,
        index,
        True,
        time_spent=time_spent,
        move_to_boundary=config.move_completed_to_boundary,
        now=now,
    )
    save_state(store, state, DECK)
    return next(e for e in state.deck if e.instance_id == entry.instance_id)


def uncomplete(store: StateStore, index: int) -> DeckEntry | None:
    """Mark the entry at index incomplete; it rejoins the front of the queue."""
    state = load_state(store)
    if not 0 <= index < len(state.deck):
        return None
    entry = state.deck[index]
    state.deck = set_completion(state.deck, index, False)
    save_state(store, state, DECK)
    return next(e for e in state.deck if e.instance_id == entry.instance_id)


def start_timer(store: StateStore, index: int, now: datetime | None = None) -> DeckEntry | None:
    """
    Start timing the entry at index.

    Seconds tracked on the entry that was being timed are kept on that entry,
    and timing an entry again picks up from what it already has.
    """
    now = now or datetime.now()
    state = load_state(store)
    if not 0 <= index < len(state.deck):
        return None
    entry = state.deck[index]
    state.timer, outgoing, seconds = timer.switch(
        state.timer, entry.instance_id, now, resume_from=entry.time_spent
    )
    banked = index_of(state.deck, outgoing) if outgoing else None
    if banked is not None:
        state.deck = update_entry(state.deck, banked, time_spent=seconds)
    save_state(store, state, DECK)
    return entry


def pause_timer(store: StateStore, now: datetime | None = None) -> int:
    """Pause the running timer. Returns the seconds tracked so far."""
    state = load_state(store)
    state.timer = timer.pause(state.timer, now)
    save_state(store, state, DECK)
    return state.timer.accumulated_seconds


def stats(store: StateStore) -> DeckStats:
    return deck_stats(load_state(store).deck)


# ============== Day completion ==============


def finish_day(
    store: StateStore,
    config: Config,
    start_new_day: bool = False,
    now: datetime | None = None,
) -> DayCompletionResult:
    """
    Record today's deck in the history and update the streak.

    History is saved straight away; completing the same day again replaces
    that day's record.
    """
    now = now or datetime.now()
    state = load_state(store)
    result = complete_day(state.deck, state.history, now=now, today=today(config))

    state.history = result.history
    state.streak = result.streak
    save_state(store, state, HISTORY)

    if start_new_day:
        state.deck = clear_deck()
        state.timer = TimerState()
        state.deck_date = ""
        save_state(store, state, DECK)

    logger.info(
        f"Completed {result.completion.id}: "
        f"{result.completion.summary.completed_cards}/{result.completion.summary.total_cards} cards"
    )
    return result


def current_streak(store: StateStore, config: Config) -> UserStreak:
    """Streak recomputed against today, so a lapsed streak reads as 0."""
    state = load_state(store)
    return streak_from_history(state.history, today(config))


# ============== Templates ==============


def save_deck_as_template(store: StateStore, name: str) -> Template:
    state = load_state(store)
    template = save_template(name, state.deck)
    state.templates = [*state.templates, template]
    save_state(store, state, TEMPLATES)
    return template


def apply_template(store: StateStore, config: Config, key: str) -> TemplateLoad | None:
    """Replace the deck with a template's cards. Returns None if no such template."""
    state = load_state(store)
    template = find_template(state.templates, key)
    if template is None:
        return None

    loaded = load_template(template, state.catalog)
    if loaded.dropped:
        logger.info(f"Template {template.name!r}: {loaded.dropped} card(s) no longer in the catalog")
    state.deck = loaded.deck
    state.timer = TimerState()
    _touch(state, config)
    save_state(store, state, DECK)
    return loaded


def remove_template(store: StateStore, key: str) -> Template | None:
    state = load_state(store)
    template = find_template(state.templates, key)
    if template is None:
        return None
    state.templates = delete_template(state.templates, template.id)
    save_state(store, state, TEMPLATES)
    return template


def rename(store: StateStore, key: str, name: str) -> Template | None:
    state = load_state(store)
    template = find_template(state.templates, key)
    if template is None:
        return None
    state.templates = rename_template(state.templates, template.id, name)
    save_state(store, state, TEMPLATES)
    return find_template(state.templates, template.id)
