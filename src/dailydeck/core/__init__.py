"""Functional core - pure deck state logic with no I/O."""

from .models import CATEGORY_KEYS, Card, DeckEntry, RecurrenceType, ScheduleConfig
from .availability import is_available, available_cards, available_catalog
from .recurrence import SchedulePresets, occurs_on, next_occurrence, describe
from .transitions import DECK, MoveRequest, Transition, TransitionKind, apply_move, add_to_deck
from .ordering import first_incomplete_index, set_completion, focused_index
from .day_completion import DayCompletion, DayCompletionSummary, UserStreak, complete_day, calculate_streak
from .templates import Template, TemplateCard, save_template, load_template

__all__ = [
    # Models
    "CATEGORY_KEYS",
    "Card",
    "DeckEntry",
    "RecurrenceType",
    "ScheduleConfig",
    # Availability
    "is_available",
    "available_cards",
    "available_catalog",
    # Recurrence
    "SchedulePresets",
    "occurs_on",
    "next_occurrence",
    "describe",
    # Transitions
    "DECK",
    "MoveRequest",
    "Transition",
    "TransitionKind",
    "apply_move",
    "add_to_deck",
    # Ordering
    "first_incomplete_index",
    "set_completion",
    "focused_index",
    # Day completion
    "DayCompletion",
    "DayCompletionSummary",
    "UserStreak",
    "complete_day",
    "calculate_streak",
    # Templates
    "Template",
    "TemplateCard",
    "save_template",
    "load_template",
]
