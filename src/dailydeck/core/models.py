"""Card and deck entry models - no I/O dependencies."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

STRUCTURE = "structure"
UPKEEP = "upkeep"
PLAY = "play"
DEFAULT = "default"

CATEGORY_KEYS: tuple[str, ...] = (STRUCTURE, UPKEEP, PLAY, DEFAULT)

CATEGORY_NAMES = {
    STRUCTURE: "Structure",
    UPKEEP: "Upkeep",
    PLAY: "Play",
    DEFAULT: "Default",
}


class RecurrenceType(str, Enum):
    """How often a catalog card may enter the deck."""

    ALWAYS = "always"  # Unlimited copies
    ONCE = "once"  # At most one copy
    LIMITED = "limited"  # Up to max_uses copies
    SCHEDULED = "scheduled"  # Only on dates the rule fires

    @classmethod
    def parse(cls, value: str | None) -> "RecurrenceType":
        """Parse a stored value, treating unknown or missing values as ALWAYS."""
        if not value:
            return cls.ALWAYS
        try:
            return cls(value)
        except ValueError:
            return cls.ALWAYS


@dataclass(frozen=True)
class ScheduleConfig:
    """Calendar recurrence rule attached to a scheduled card."""

    rrule: str
    timezone: str | None = None

    def to_dict(self) -> dict:
        data = {"rrule": self.rrule}
        if self.timezone:
            data["timezone"] = self.timezone
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduleConfig":
        return cls(rrule=data.get("rrule", ""), timezone=data.get("timezone"))


@dataclass(frozen=True)
class Card:
    """A task definition living in the catalog."""

    id: str
    title: str
    description: str = ""
    duration: int | None = None
    recurrence_type: RecurrenceType = RecurrenceType.ALWAYS
    schedule: ScheduleConfig | None = None
    max_uses: int | None = None
    created_at: datetime | None = None

    @property
    def effective_max_uses(self) -> int:
        """Cap for LIMITED cards; a missing or non-positive value means 1."""
        if self.max_uses is None or self.max_uses < 1:
            return 1
        return self.max_uses

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "recurrenceType": self.recurrence_type.value,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        if self.recurrence_type is RecurrenceType.SCHEDULED and self.schedule:
            data["scheduleConfig"] = self.schedule.to_dict()
        if self.recurrence_type is RecurrenceType.LIMITED:
            data["maxUses"] = self.effective_max_uses
        if self.created_at:
            data["createdAt"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Card":
        """Create a Card from a stored document. Execution fields are ignored."""
        recurrence = RecurrenceType.parse(data.get("recurrenceType"))
        schedule = None
        if recurrence is RecurrenceType.SCHEDULED and data.get("scheduleConfig"):
            schedule = ScheduleConfig.from_dict(data["scheduleConfig"])
        max_uses = None
        if recurrence is RecurrenceType.LIMITED:
            max_uses = data.get("maxUses") or 1
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", "") or "",
            duration=data.get("duration"),
            recurrence_type=recurrence,
            schedule=schedule,
            max_uses=max_uses,
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True)
class DeckEntry:
    """
    One copy of a catalog card placed in today's deck.

    The catalog card is held as a read-only snapshot; everything that changes
    while working through the day lives on the entry itself.
    """

    instance_id: str
    card: Card
    source_category: str
    completed: bool = False
    completed_at: datetime | None = None
    time_spent: int = 0  # seconds
    added_at: datetime | None = None
    extra: dict = field(default_factory=dict)

    @property
    def card_id(self) -> str:
        return self.card.id

    @property
    def title(self) -> str:
        return self.card.title

    def with_updates(self, **updates) -> "DeckEntry":
        return replace(self, **updates)

    def to_dict(self) -> dict:
        data = {
            "instanceId": self.instance_id,
            "card": self.card.to_dict(),
            "sourceCategory": self.source_category,
            "completed": self.completed,
            "timeSpent": self.time_spent,
        }
        if self.completed_at:
            data["completedAt"] = self.completed_at.isoformat()
        if self.added_at:
            data["addedAt"] = self.added_at.isoformat()
        if self.extra:
            data["extra"] = dict(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DeckEntry":
        return cls(
            instance_id=data["instanceId"],
            card=Card.from_dict(data["card"]),
            source_category=data.get("sourceCategory") or DEFAULT,
            completed=bool(data.get("completed", False)),
            completed_at=parse_timestamp(data.get("completedAt")),
            time_spent=int(data.get("timeSpent") or 0),
            added_at=parse_timestamp(data.get("addedAt")),
            extra=dict(data.get("extra") or {}),
        )


Catalog = dict[str, list[Card]]
Deck = list[DeckEntry]


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp, returning None for missing or unreadable values."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def catalog_to_dict(catalog: Catalog) -> dict:
    return {key: [c.to_dict() for c in catalog.get(key, [])] for key in CATEGORY_KEYS}


def catalog_from_dict(data: dict | None) -> Catalog:
    """Build a catalog from a stored document; unknown category keys are dropped."""
    data = data or {}
    return {key: [Card.from_dict(c) for c in data.get(key, [])] for key in CATEGORY_KEYS}


def deck_to_list(deck: Deck) -> list[dict]:
    return [entry.to_dict() for entry in deck]


def deck_from_list(data: list | None) -> Deck:
    return [DeckEntry.from_dict(d) for d in data or []]
