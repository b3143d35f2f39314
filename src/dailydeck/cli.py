"""dailydeck CLI - build and work through a daily deck of task cards."""

import json
import logging
import sys
from datetime import date, datetime

import click

from . import workflows
from .adapters.json_store import StorageError
from .config import load_config
from .core.availability import available_catalog, usage_count
from .core.catalog import find_card
from .core.deck import deck_stats
from .core.models import CATEGORY_KEYS, CATEGORY_NAMES, RecurrenceType, ScheduleConfig
from .core.ordering import focused_index
from .core.recurrence import SchedulePresets, describe, next_occurrence, occurs_on
from .core.timer import elapsed
from .core.transitions import DECK, MoveRequest

PRESETS = {
    "daily": SchedulePresets.DAILY,
    "weekdays": SchedulePresets.WEEKDAYS,
    "weekends": SchedulePresets.WEEKENDS,
    "first-of-month": SchedulePresets.FIRST_OF_MONTH,
    "last-of-month": SchedulePresets.LAST_OF_MONTH,
}


def format_duration(seconds: int) -> str:
    """Format seconds as "1h 23m", "45m" or "30s"."""
    if seconds < 60:
        return f"{seconds}s"
    hours, minutes = seconds // 3600, (seconds % 3600) // 60
    if hours:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    return f"{minutes}m"


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _run(workflow, *args, **kwargs):
    """Call a workflow, turning storage failures into a clean exit."""
    try:
        return workflow(*args, **kwargs)
    except StorageError as e:
        _fail(str(e))


def _context():
    config = load_config()
    return config, _run(workflows.get_store, config)


def _load(store):
    return _run(workflows.load_state, store)


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """dailydeck - daily task card deck."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


# ============== Cards ==============


@main.group()
def cards():
    """Manage the card catalog."""
    pass


def _card_policy(card) -> str:
    match card.recurrence_type:
        case RecurrenceType.LIMITED:
            return f"limited x{card.effective_max_uses}"
        case RecurrenceType.SCHEDULED:
            return describe(card.schedule) if card.schedule else "Scheduled"
        case _:
            return card.recurrence_type.value


@cards.command("list")
@click.option("--available", is_flag=True, help="Only cards that can be added today")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def cards_list(available: bool, as_json: bool):
    """List catalog cards by category."""
    config, store = _context()
    state = _load(store)
    catalog = state.catalog
    if available:
        catalog = available_catalog(catalog, state.deck, on=workflows.today(config))

    if as_json:
        click.echo(json.dumps({k: [c.to_dict() for c in catalog[k]] for k in CATEGORY_KEYS}, indent=2))
        return

    for key in CATEGORY_KEYS:
        click.echo(f"### {CATEGORY_NAMES[key]}")
        if not catalog[key]:
            click.echo("  (empty)")
        for card in catalog[key]:
            used = usage_count(card.id, state.deck)
            in_deck = f" [in deck x{used}]" if used else ""
            duration = f" ({card.duration}m)" if card.duration else ""
            click.echo(f"  {card.id}  {card.title}{duration} - {_card_policy(card)}{in_deck}")
        click.echo()


@cards.command("add")
@click.argument("title")
@click.option(
    "--category",
    "-c",
    type=click.Choice(CATEGORY_KEYS),
    default=None,
    help="Catalog category (DEFAULT_CATEGORY from config if omitted)",
)
@click.option("--description", "-d", default="", help="Card description")
@click.option("--duration", type=click.IntRange(min=1), default=None, help="Estimated minutes")
@click.option(
    "--recurrence",
    type=click.Choice([r.value for r in RecurrenceType]),
    default=RecurrenceType.ALWAYS.value,
    help="How often the card may enter the deck",
)
@click.option("--max-uses", type=click.IntRange(min=1), default=None, help="Cap for limited cards")
@click.option("--rrule", default=None, help="Recurrence rule for scheduled cards")
@click.option("--preset", type=click.Choice(sorted(PRESETS)), default=None, help="Schedule preset")
@click.option("--days", default=None, help="Weekly schedule days, 0=Sun..6=Sat (e.g. 1,3)")
@click.option("--dates", default=None, help="Monthly schedule dates (e.g. 1,15)")
@click.option("--start", "start_date", default=None, help="Schedule start date (YYYY-MM-DD)")
def cards_add(
    title: str,
    category: str | None,
    description: str,
    duration: int | None,
    recurrence: str,
    max_uses: int | None,
    rrule: str | None,
    preset: str | None,
    days: str | None,
    dates: str | None,
    start_date: str | None,
):
    """Add a card to a category."""
    config, store = _context()
    category = category or config.default_category
    recurrence_type = RecurrenceType(recurrence)

    if recurrence_type is RecurrenceType.SCHEDULED and not rrule:
        try:
            if preset:
                rrule = PRESETS[preset]
            elif days:
                rrule = SchedulePresets.weekly([int(d) for d in days.split(",") if d.strip()])
            elif dates:
                rrule = SchedulePresets.monthly([int(d) for d in dates.split(",") if d.strip()])
        except ValueError as e:
            raise click.BadParameter(str(e)) from e
        if not rrule:
            raise click.UsageError("Scheduled cards need --rrule, --preset, --days or --dates")
        if start_date:
            try:
                rrule = SchedulePresets.with_start(rrule, date.fromisoformat(start_date))
            except ValueError as e:
                raise click.BadParameter(str(e), param_hint="--start") from e

    card = _run(
        workflows.create_card,
        store,
        category,
        title,
        description=description,
        duration=duration,
        recurrence_type=recurrence_type,
        rrule=rrule,
        max_uses=max_uses,
        timezone=config.timezone,
    )
    click.echo(f"✓ Added {card.id} to {CATEGORY_NAMES[category]}")


@cards.command("edit")
@click.argument("card_id")
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--duration", type=click.IntRange(min=1), default=None)
def cards_edit(card_id: str, title: str | None, description: str | None, duration: int | None):
    """Edit a card's text or duration."""
    _, store = _context()
    updates = {
        k: v
        for k, v in {"title": title, "description": description, "duration": duration}.items()
        if v is not None
    }
    if not updates:
        click.echo("Nothing to change.")
        return
    card = _run(workflows.edit_card, store, card_id, **updates)
    if card is None:
        _fail(f"No card {card_id}")
    click.echo(f"✓ Updated {card.id}")


@cards.command("move")
@click.argument("card_id")
@click.argument("category", type=click.Choice(CATEGORY_KEYS))
@click.option("--position", type=click.IntRange(min=1), default=None, help="1-based position (default: end)")
def cards_move(card_id: str, category: str, position: int | None):
    """Move a card to another category (or reorder within its own)."""
    config, store = _context()
    state = _load(store)
    found = find_card(state.catalog, card_id)
    if found is None:
        _fail(f"No card {card_id}")
    source, index, _ = found
    if position is None:
        destination_index = len(state.catalog[category]) - (1 if source == category else 0)
    else:
        destination_index = position - 1

    result = _run(
        workflows.move,
        store,
        config,
        MoveRequest(source, category, card_id, index, destination_index),
    )
    if not result.changed:
        click.echo(f"Nothing moved: {result.reason}")
        return
    click.echo(f"✓ Moved {card_id} to {CATEGORY_NAMES[category]}")


@cards.command("rm")
@click.argument("card_id")
def cards_rm(card_id: str):
    """Delete a card (and its copies in the deck)."""
    _, store = _context()
    if not _run(workflows.delete_card_everywhere, store, card_id):
        _fail(f"No card {card_id}")
    click.echo(f"✓ Deleted {card_id}")


# ============== Deck ==============


@main.group(invoke_without_command=True)
@click.pass_context
def deck(ctx):
    """Work with today's deck."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(deck_show)


@deck.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def deck_show(as_json: bool = False):
    """Show today's deck."""
    config, store = _context()
    state = _load(store)

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in state.deck], indent=2))
        return

    if not state.deck:
        click.echo("Deck is empty.")
        return

    if workflows.is_stale(state, config):
        click.echo(
            f"Deck is from {state.deck_date}; run `dailydeck finish --new-day` to start fresh.\n"
        )

    focus = focused_index(state.deck)
    for i, entry in enumerate(state.deck):
        mark = "x" if entry.completed else " "
        pointer = ">" if i == focus else " "
        timed = state.timer.entry_id == entry.instance_id
        spent = ""
        if entry.completed or (entry.time_spent and not timed):
            spent = f" ({format_duration(entry.time_spent)})"
        timing = ""
        if timed:
            timing = f" ⏱ {format_duration(elapsed(state.timer))}"
            if not state.timer.is_running:
                timing += " paused"
        click.echo(f"{pointer}{i + 1:3}. [{mark}] {entry.title} <{entry.source_category}>{spent}{timing}")

    stats = deck_stats(state.deck)
    click.echo(
        f"\n{stats.completed_cards}/{stats.total_cards} done ({stats.completion_percentage}%), "
        f"{format_duration(stats.time_spent)} tracked"
    )


@deck.command("add")
@click.argument("card_id")
def deck_add(card_id: str):
    """Add a copy of a catalog card to the deck."""
    config, store = _context()
    result = _run(workflows.add, store, config, card_id)
    if not result.changed:
        click.echo(f"Not added: {result.reason}")
        return
    click.echo(f"✓ Added {result.entry.title} ({len(result.deck)} in deck)")


@deck.command("move")
@click.argument("position", type=click.IntRange(min=1))
@click.argument("to", type=click.IntRange(min=1))
def deck_move(position: int, to: int):
    """Move the card at POSITION to position TO."""
    config, store = _context()
    state = _load(store)
    if position > len(state.deck):
        _fail(f"No card at position {position}")
    entry = state.deck[position - 1]
    result = _run(
        workflows.move,
        store,
        config,
        MoveRequest(DECK, DECK, entry.instance_id, position - 1, to - 1),
    )
    if not result.changed:
        click.echo(f"Nothing moved: {result.reason}")
        return
    click.echo(f"✓ Moved {entry.title} to position {to}")


@deck.command("done")
@click.argument("position", type=click.IntRange(min=1))
def deck_done(position: int):
    """Mark the card at POSITION complete."""
    config, store = _context()
    entry = _run(workflows.complete, store, config, position - 1)
    if entry is None:
        _fail(f"No card at position {position}")
    click.echo(f"✓ {entry.title} done ({format_duration(entry.time_spent)})")


@deck.command("undo")
@click.argument("position", type=click.IntRange(min=1))
def deck_undo(position: int):
    """Mark the card at POSITION incomplete again."""
    _, store = _context()
    entry = _run(workflows.uncomplete, store, position - 1)
    if entry is None:
        _fail(f"No card at position {position}")
    click.echo(f"↺ {entry.title} is back in the queue")


@deck.command("rm")
@click.argument("position", type=click.IntRange(min=1))
def deck_rm(position: int):
    """Return the card at POSITION to its stack."""
    _, store = _context()
    entry = _run(workflows.remove, store, position - 1)
    if entry is None:
        _fail(f"No card at position {position}")
    click.echo(f"✓ Returned {entry.title} to {entry.source_category}")


@deck.command("clear")
@click.confirmation_option(prompt="Clear the whole deck?")
def deck_clear():
    """Remove every card from the deck."""
    _, store = _context()
    _run(workflows.clear, store)
    click.echo("✓ Deck cleared")


@deck.command("start")
@click.argument("position", type=click.IntRange(min=1))
def deck_start(position: int):
    """Start the timer on the card at POSITION."""
    _, store = _context()
    entry = _run(workflows.start_timer, store, position - 1)
    if entry is None:
        _fail(f"No card at position {position}")
    click.echo(f"⏱ Timing {entry.title}")


@deck.command("pause")
def deck_pause():
    """Pause the running timer."""
    _, store = _context()
    seconds = _run(workflows.pause_timer, store)
    click.echo(f"⏸ Paused at {format_duration(seconds)}")


# ============== Day completion ==============


@main.command()
@click.option("--new-day", is_flag=True, help="Clear the deck after recording the day")
def finish(new_day: bool):
    """Complete the day and update your streak."""
    config, store = _context()
    result = _run(workflows.finish_day, store, config, start_new_day=new_day)

    summary = result.completion.summary
    click.echo(f"Day complete: {result.completion.id}\n")
    click.echo(f"Cards: {summary.completed_cards}/{summary.total_cards}")
    click.echo(f"Time:  {format_duration(summary.total_time_spent)}")
    for b in summary.category_breakdown:
        click.echo(f"  {CATEGORY_NAMES.get(b.category, b.category):10} {b.count} ({format_duration(b.time_spent)})")
    click.echo(f"\nStreak: {result.streak.current_streak} (best {result.streak.longest_streak})")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def streak(as_json: bool):
    """Show the current and longest streak."""
    config, store = _context()
    current = _run(workflows.current_streak, store, config)
    if as_json:
        click.echo(json.dumps(current.to_dict(), indent=2))
        return
    last = current.last_completion_date or "never"
    click.echo(f"Current streak: {current.current_streak}")
    click.echo(f"Longest streak: {current.longest_streak}")
    click.echo(f"Last completed: {last}")


# ============== Templates ==============


@main.group()
def templates():
    """Save and load deck templates."""
    pass


@templates.command("list")
def templates_list():
    """List saved templates."""
    _, store = _context()
    state = _load(store)
    if not state.templates:
        click.echo("No templates.")
        return
    for t in state.templates:
        click.echo(f"  {t.id}  {t.name} ({len(t.cards)} cards)")


@templates.command("save")
@click.argument("name")
def templates_save(name: str):
    """Save the current deck as a template."""
    _, store = _context()
    template = _run(workflows.save_deck_as_template, store, name)
    click.echo(f"✓ Saved {template.name} ({len(template.cards)} cards)")


@templates.command("load")
@click.argument("key")
def templates_load(key: str):
    """Replace the deck with a template (by id or name)."""
    config, store = _context()
    loaded = _run(workflows.apply_template, store, config, key)
    if loaded is None:
        _fail(f"No template {key}")
    click.echo(f"✓ Loaded {len(loaded.deck)} cards")
    if loaded.dropped:
        click.echo(f"  {loaded.dropped} card(s) no longer exist and were skipped")


@templates.command("rename")
@click.argument("key")
@click.argument("name")
def templates_rename(key: str, name: str):
    """Rename a template."""
    _, store = _context()
    template = _run(workflows.rename, store, key, name)
    if template is None:
        _fail(f"No template {key}")
    click.echo(f"✓ Renamed to {template.name}")


@templates.command("rm")
@click.argument("key")
def templates_rm(key: str):
    """Delete a template."""
    _, store = _context()
    template = _run(workflows.remove_template, store, key)
    if template is None:
        _fail(f"No template {key}")
    click.echo(f"✓ Deleted {template.name}")


# ============== Schedules ==============


@main.group()
def schedule():
    """Check recurrence rules."""
    pass


@schedule.command("check")
@click.argument("rule")
@click.option("--date", "-d", "target_date", default=None, help="Date to check (YYYY-MM-DD), defaults to today")
def schedule_check(rule: str, target_date: str | None):
    """Does RULE fire on a date?"""
    config = load_config()
    try:
        target = date.fromisoformat(target_date) if target_date else workflows.today(config)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--date") from e
    config_rule = ScheduleConfig(rrule=rule.replace("\\n", "\n"))
    fires = occurs_on(config_rule, target)
    click.echo(f"{describe(config_rule)}: {'yes' if fires else 'no'} on {target.strftime('%A, %b %d')}")


@schedule.command("next")
@click.argument("rule")
@click.option("--after", default=None, help="Start searching from (ISO date/time), defaults to now")
def schedule_next(rule: str, after: str | None):
    """Next date RULE fires."""
    try:
        start = datetime.fromisoformat(after) if after else datetime.now()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--after") from e
    found = next_occurrence(ScheduleConfig(rrule=rule.replace("\\n", "\n")), start)
    if found is None:
        click.echo("No upcoming occurrence.")
        return
    click.echo(found.date().isoformat())


if __name__ == "__main__":
    main()
