"""Deck templates - replayable deck compositions, no I/O dependencies.

A template stores only (card id, category) pairs. Loading it looks each pair
up in the current catalog, so card edits show up and deleted cards drop out.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime

from .deck import new_entry
from .models import Catalog, DeckEntry, parse_timestamp


@dataclass(frozen=True)
class TemplateCard:
    card_id: str
    source_category: str

    def to_dict(self) -> dict:
        return {"id": self.card_id, "sourceCategory": self.source_category}

    @classmethod
    def from_dict(cls, data: dict) -> "TemplateCard":
        return cls(card_id=data["id"], source_category=data.get("sourceCategory", ""))


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    cards: list[TemplateCard] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "cards": [c.to_dict() for c in self.cards],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.updated_at:
            data["updatedAt"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Template":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            cards=[TemplateCard.from_dict(c) for c in data.get("cards", [])],
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class TemplateLoad:
    """A deck rebuilt from a template, plus how many references were missing."""

    deck: list[DeckEntry]
    dropped: int


def save_template(name: str, deck: list[DeckEntry], now: datetime | None = None) -> Template:
    """Capture the deck's composition (order, card ids and categories)."""
    return Template(
        id=f"template-{uuid.uuid4().hex[:12]}",
        name=name,
        cards=[TemplateCard(card_id=e.card_id, source_category=e.source_category) for e in deck],
        created_at=now or datetime.now(),
    )


def load_template(template: Template, catalog: Catalog, now: datetime | None = None) -> TemplateLoad:
    """
    Build a fresh deck from a template against the current catalog.

    References to cards no longer in their category are skipped and counted.
    """
    now = now or datetime.now()
    deck = []
    for ref in template.cards:
        card = next((c for c in catalog.get(ref.source_category, []) if c.id == ref.card_id), None)
        if card is not None:
            deck.append(new_entry(card, ref.source_category, now))
    return TemplateLoad(deck=deck, dropped=len(template.cards) - len(deck))


def rename_template(
    templates: list[Template],
    template_id: str,
    name: str,
    now: datetime | None = None,
) -> list[Template]:
    return [
        replace(t, name=name, updated_at=now or datetime.now()) if t.id == template_id else t
        for t in templates
    ]


def delete_template(templates: list[Template], template_id: str) -> list[Template]:
    return [t for t in templates if t.id != template_id]


def find_template(templates: list[Template], key: str) -> Template | None:
    """Look up a template by id, falling back to a case-insensitive name match."""
    for t in templates:
        if t.id == key:
            return t
    for t in templates:
        if t.name.lower() == key.lower():
            return t
    return None
