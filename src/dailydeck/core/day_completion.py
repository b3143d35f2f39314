"""Day completion records and streaks - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .models import DEFAULT, DeckEntry, parse_timestamp


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    count: int
    time_spent: int  # seconds

    def to_dict(self) -> dict:
        return {"category": self.category, "count": self.count, "timeSpent": self.time_spent}

    @classmethod
    def from_dict(cls, data: dict) -> "CategoryBreakdown":
        return cls(
            category=data.get("category", DEFAULT),
            count=int(data.get("count", 0)),
            time_spent=int(data.get("timeSpent", 0)),
        )


@dataclass(frozen=True)
class CompletedCardInfo:
    id: str
    title: str
    category: str
    time_spent: int
    completed_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "timeSpent": self.time_spent,
            "completedAt": self.completed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CompletedCardInfo":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            category=data.get("category", DEFAULT),
            time_spent=int(data.get("timeSpent", 0)),
            completed_at=parse_timestamp(data.get("completedAt")) or datetime.min,
        )


@dataclass(frozen=True)
class DayCompletionSummary:
    """What got done in one day's deck."""

    total_cards: int
    completed_cards: int
    total_time_spent: int  # seconds, completed cards only
    category_breakdown: list[CategoryBreakdown] = field(default_factory=list)
    cards_list: list[CompletedCardInfo] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalCards": self.total_cards,
            "completedCards": self.completed_cards,
            "totalTimeSpent": self.total_time_spent,
            "categoryBreakdown": [b.to_dict() for b in self.category_breakdown],
            "cardsList": [c.to_dict() for c in self.cards_list],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DayCompletionSummary":
        return cls(
            total_cards=int(data.get("totalCards", 0)),
            completed_cards=int(data.get("completedCards", 0)),
            total_time_spent=int(data.get("totalTimeSpent", 0)),
            category_breakdown=[CategoryBreakdown.from_dict(b) for b in data.get("categoryBreakdown", [])],
            cards_list=[CompletedCardInfo.from_dict(c) for c in data.get("cardsList", [])],
        )


@dataclass(frozen=True)
class DayCompletion:
    """A completed day, keyed by its YYYY-MM-DD date."""

    id: str
    completed_at: datetime
    summary: DayCompletionSummary

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "completedAt": self.completed_at.isoformat(),
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DayCompletion":
        return cls(
            id=data["id"],
            completed_at=parse_timestamp(data.get("completedAt")) or datetime.min,
            summary=DayCompletionSummary.from_dict(data.get("summary", {})),
        )


@dataclass(frozen=True)
class UserStreak:
    current_streak: int = 0
    longest_streak: int = 0
    last_completion_date: str = ""

    def to_dict(self) -> dict:
        return {
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "lastCompletionDate": self.last_completion_date,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "UserStreak":
        data = data or {}
        return cls(
            current_streak=int(data.get("currentStreak", 0)),
            longest_streak=int(data.get("longestStreak", 0)),
            last_completion_date=data.get("lastCompletionDate", "") or "",
        )


@dataclass
class DayCompletionResult:
    completion: DayCompletion
    streak: UserStreak
    history: list[DayCompletion]


def date_key(d: date) -> str:
    """Storage key for a calendar date."""
    return d.isoformat()


def summarize_deck(deck: list[DeckEntry], now: datetime | None = None) -> DayCompletionSummary:
    """
    Build the completion summary for a deck.

    Pure function - no I/O. Time and category totals count completed entries
    only; entries without a category are counted under "default".
    """
    now = now or datetime.now()
    completed = [e for e in deck if e.completed]

    # dict keeps first-seen category order
    breakdown: dict[str, list[int]] = {}
    for entry in completed:
        category = entry.source_category or DEFAULT
        totals = breakdown.setdefault(category, [0, 0])
        totals[0] += 1
        totals[1] += entry.time_spent

    cards_list = [
        CompletedCardInfo(
            id=e.card_id,
            title=e.title,
            category=e.source_category or DEFAULT,
            time_spent=e.time_spent,
            completed_at=e.completed_at or now,
        )
        for e in completed
    ]

    return DayCompletionSummary(
        total_cards=len(deck),
        completed_cards=len(completed),
        total_time_spent=sum(e.time_spent for e in completed),
        category_breakdown=[
            CategoryBreakdown(category=c, count=count, time_spent=spent)
            for c, (count, spent) in breakdown.items()
        ],
        cards_list=cards_list,
    )


def calculate_streak(dates: list[str], today: date) -> tuple[int, int]:
    """
    Current and longest streak from YYYY-MM-DD completion dates.

    The current streak only counts if the latest completion is today or
    yesterday; it then runs back through consecutive days. The longest streak
    is the longest consecutive run anywhere in the history.

    Returns: (current, longest)
    """
    if not dates:
        return 0, 0

    days = sorted({date.fromisoformat(d) for d in dates}, reverse=True)

    current = 0
    if days[0] in (today, today - timedelta(days=1)):
        current = 1
        for prev, curr in zip(days, days[1:]):
            if (prev - curr).days != 1:
                break
            current += 1

    longest = 1
    run = 1
    for prev, curr in zip(days, days[1:]):
        if (prev - curr).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1

    return current, max(longest, current)


def streak_from_history(history: list[DayCompletion], today: date) -> UserStreak:
    """Recompute the streak from a full completion history."""
    dates = [c.id for c in history]
    current, longest = calculate_streak(dates, today)
    return UserStreak(
        current_streak=current,
        longest_streak=longest,
        last_completion_date=max(dates) if dates else "",
    )


def complete_day(
    deck: list[DeckEntry],
    history: list[DayCompletion],
    now: datetime | None = None,
    today: date | None = None,
) -> DayCompletionResult:
    """
    Record today's deck as a completed day and recompute the streak.

    Completing the same date again replaces that date's record in place.
    """
    now = now or datetime.now()
    today = today or now.date()
    key = date_key(today)

    completion = DayCompletion(id=key, completed_at=now, summary=summarize_deck(deck, now))

    if any(c.id == key for c in history):
        new_history = [completion if c.id == key else c for c in history]
    else:
        new_history = [*history, completion]

    return DayCompletionResult(
        completion=completion,
        streak=streak_from_history(new_history, today),
        history=new_history,
    )
