"""Tests for the click command line."""

import json
from datetime import date, datetime, timedelta
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dailydeck import workflows
from dailydeck.cli import format_duration, main
from dailydeck.config import Config


@pytest.fixture
def config(tmp_path):
    return Config(data_dir=str(tmp_path))


@pytest.fixture
def runner(config):
    with patch("dailydeck.cli.load_config", return_value=config), patch(
        "dailydeck.workflows.today", return_value=date(2024, 1, 15)
    ):
        yield CliRunner()


@pytest.fixture
def store(config):
    return workflows.get_store(config)


def card_id(store, category: str, index: int = 0) -> str:
    return workflows.load_state(store).catalog[category][index].id


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, "0s"), (45, "45s"), (60, "1m"), (1500, "25m"), (3600, "1h"), (5000, "1h 23m")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestCards:
    def test_add_and_list(self, runner, store):
        result = runner.invoke(main, ["cards", "add", "Plan", "-c", "structure", "--duration", "10"])
        assert result.exit_code == 0
        assert "Added structure-" in result.output

        result = runner.invoke(main, ["cards", "list"])
        assert "### Structure" in result.output
        assert "Plan (10m) - always" in result.output

    def test_add_scheduled_with_days(self, runner, store):
        result = runner.invoke(
            main,
            ["cards", "add", "Gym", "-c", "upkeep", "--recurrence", "scheduled", "--days", "1,3", "--start", "2024-01-01"],
        )
        assert result.exit_code == 0

        card = workflows.load_state(store).catalog["upkeep"][0]
        assert card.schedule.rrule == "DTSTART:20240101T000000Z\nFREQ=WEEKLY;BYDAY=MO,WE"

        listing = runner.invoke(main, ["cards", "list"])
        assert "Every week on Monday and Wednesday" in listing.output

    def test_scheduled_needs_rule(self, runner):
        result = runner.invoke(main, ["cards", "add", "Gym", "-c", "upkeep", "--recurrence", "scheduled"])
        assert result.exit_code == 2
        assert "Scheduled cards need" in result.output

    def test_bad_start_date(self, runner):
        result = runner.invoke(
            main,
            ["cards", "add", "Gym", "-c", "upkeep", "--recurrence", "scheduled", "--preset", "daily", "--start", "soon"],
        )
        assert result.exit_code == 2

    def test_bad_weekday(self, runner):
        result = runner.invoke(
            main, ["cards", "add", "Gym", "-c", "upkeep", "--recurrence", "scheduled", "--days", "9"]
        )
        assert result.exit_code == 2

    def test_unknown_category(self, runner):
        result = runner.invoke(main, ["cards", "add", "Laundry", "-c", "chores"])
        assert result.exit_code == 2

    def test_add_uses_default_category(self, runner, store, config):
        config.default_category = "play"
        result = runner.invoke(main, ["cards", "add", "Guitar"])
        assert result.exit_code == 0
        assert "to Play" in result.output
        assert workflows.load_state(store).catalog["play"][0].title == "Guitar"

    def test_add_without_category_config(self, runner, store):
        runner.invoke(main, ["cards", "add", "Nap"])
        assert workflows.load_state(store).catalog["default"][0].title == "Nap"

    def test_list_available_json(self, runner, store):
        runner.invoke(main, ["cards", "add", "Guitar", "-c", "play", "--recurrence", "once"])
        runner.invoke(main, ["deck", "add", card_id(store, "play")])

        result = runner.invoke(main, ["cards", "list", "--available", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["play"] == []

    def test_edit(self, runner, store):
        runner.invoke(main, ["cards", "add", "Guitar", "-c", "play"])
        result = runner.invoke(main, ["cards", "edit", card_id(store, "play"), "--title", "Piano"])
        assert result.exit_code == 0
        assert workflows.load_state(store).catalog["play"][0].title == "Piano"

    def test_edit_missing(self, runner):
        result = runner.invoke(main, ["cards", "edit", "nope", "--title", "x"])
        assert result.exit_code == 1
        assert "Error: No card nope" in result.output

    def test_move_between_categories(self, runner, store):
        runner.invoke(main, ["cards", "add", "Guitar", "-c", "play"])
        cid = card_id(store, "play")

        result = runner.invoke(main, ["cards", "move", cid, "default"])

        assert result.exit_code == 0
        assert card_id(store, "default") == cid

    def test_rm(self, runner, store):
        runner.invoke(main, ["cards", "add", "Guitar", "-c", "play"])
        cid = card_id(store, "play")
        runner.invoke(main, ["deck", "add", cid])

        result = runner.invoke(main, ["cards", "rm", cid])

        assert result.exit_code == 0
        state = workflows.load_state(store)
        assert state.catalog["play"] == []
        assert state.deck == []


class TestDeck:
    @pytest.fixture
    def ids(self, runner, store):
        runner.invoke(main, ["cards", "add", "Plan", "-c", "structure"])
        runner.invoke(main, ["cards", "add", "Dishes", "-c", "upkeep"])
        ids = [card_id(store, "structure"), card_id(store, "upkeep")]
        for cid in ids:
            runner.invoke(main, ["deck", "add", cid])
        return ids

    def test_empty(self, runner):
        result = runner.invoke(main, ["deck"])
        assert result.exit_code == 0
        assert "Deck is empty." in result.output

    def test_show(self, runner, ids):
        result = runner.invoke(main, ["deck"])
        assert ">  1. [ ] Plan <structure>" in result.output
        assert "   2. [ ] Dishes <upkeep>" in result.output
        assert "0/2 done (0%)" in result.output

    def test_done_moves_focus(self, runner, ids):
        result = runner.invoke(main, ["deck", "done", "1"])
        assert result.exit_code == 0
        assert "Plan done" in result.output

        shown = runner.invoke(main, ["deck", "show"])
        assert "   1. [x] Plan" in shown.output
        assert ">  2. [ ] Dishes" in shown.output

    def test_undo(self, runner, store, ids):
        runner.invoke(main, ["deck", "done", "1"])
        runner.invoke(main, ["deck", "done", "2"])
        result = runner.invoke(main, ["deck", "undo", "1"])
        assert result.exit_code == 0
        assert [e.title for e in workflows.load_state(store).deck] == ["Dishes", "Plan"]

    def test_move(self, runner, store, ids):
        result = runner.invoke(main, ["deck", "move", "2", "1"])
        assert result.exit_code == 0
        assert [e.card_id for e in workflows.load_state(store).deck] == list(reversed(ids))

    def test_move_in_place(self, runner, ids):
        result = runner.invoke(main, ["deck", "move", "1", "1"])
        assert "Nothing moved: Dropped in place" in result.output

    def test_bad_position(self, runner, ids):
        result = runner.invoke(main, ["deck", "done", "9"])
        assert result.exit_code == 1
        assert "No card at position 9" in result.output

    def test_rm(self, runner, store, ids):
        result = runner.invoke(main, ["deck", "rm", "1"])
        assert "Returned Plan to structure" in result.output
        assert len(workflows.load_state(store).deck) == 1

    def test_clear(self, runner, store, ids):
        result = runner.invoke(main, ["deck", "clear", "--yes"])
        assert result.exit_code == 0
        assert workflows.load_state(store).deck == []

    def test_timer(self, runner, ids):
        assert "Timing Plan" in runner.invoke(main, ["deck", "start", "1"]).output
        assert "Paused at" in runner.invoke(main, ["deck", "pause"]).output
        assert "paused" in runner.invoke(main, ["deck"]).output

    def test_switching_keeps_time(self, runner, store, ids):
        t0 = datetime(2024, 1, 15, 9, 0)
        workflows.start_timer(store, 0, t0)
        workflows.start_timer(store, 1, t0 + timedelta(minutes=10))

        assert workflows.load_state(store).deck[0].time_spent == 600
        assert "1. [ ] Plan <structure> (10m)" in runner.invoke(main, ["deck"]).output

    def test_stale_deck_note(self, runner, store, ids):
        state = workflows.load_state(store)
        state.deck_date = "2024-01-14"
        workflows.save_state(store, state, workflows.DECK)

        result = runner.invoke(main, ["deck"])

        assert "Deck is from 2024-01-14" in result.output
        assert "finish --new-day" in result.output

    def test_todays_deck_has_no_note(self, runner, ids):
        assert "Deck is from" not in runner.invoke(main, ["deck"]).output

    def test_json(self, runner, ids):
        result = runner.invoke(main, ["deck", "show", "--json"])
        data = json.loads(result.output)
        assert [d["card"]["title"] for d in data] == ["Plan", "Dishes"]

    def test_corrupt_state(self, runner, tmp_path):
        (tmp_path / "deck.json").write_text("{")
        result = runner.invoke(main, ["deck"])
        assert result.exit_code == 1
        assert "Error: Corrupt state file" in result.output


class TestFinishAndStreak:
    def test_finish(self, runner, store):
        runner.invoke(main, ["cards", "add", "Plan", "-c", "structure"])
        runner.invoke(main, ["deck", "add", card_id(store, "structure")])
        runner.invoke(main, ["deck", "done", "1"])

        result = runner.invoke(main, ["finish", "--new-day"])

        assert result.exit_code == 0
        assert "Day complete: 2024-01-15" in result.output
        assert "Cards: 1/1" in result.output
        assert "Streak: 1 (best 1)" in result.output
        assert workflows.load_state(store).deck == []

    def test_streak_json(self, runner):
        runner.invoke(main, ["finish"])
        result = runner.invoke(main, ["streak", "--json"])
        assert json.loads(result.output) == {
            "currentStreak": 1,
            "longestStreak": 1,
            "lastCompletionDate": "2024-01-15",
        }

    def test_streak_never(self, runner):
        result = runner.invoke(main, ["streak"])
        assert "Last completed: never" in result.output


class TestTemplates:
    def test_save_load_rename_rm(self, runner, store):
        runner.invoke(main, ["cards", "add", "Plan", "-c", "structure"])
        runner.invoke(main, ["deck", "add", card_id(store, "structure")])

        assert "Saved Weekday (1 cards)" in runner.invoke(main, ["templates", "save", "Weekday"]).output
        runner.invoke(main, ["deck", "clear", "--yes"])
        assert "Loaded 1 cards" in runner.invoke(main, ["templates", "load", "weekday"]).output
        assert "Weekday (1 cards)" in runner.invoke(main, ["templates", "list"]).output
        assert "Renamed to Workday" in runner.invoke(main, ["templates", "rename", "Weekday", "Workday"]).output
        assert "Deleted Workday" in runner.invoke(main, ["templates", "rm", "Workday"]).output
        assert "No templates." in runner.invoke(main, ["templates", "list"]).output

    def test_load_missing(self, runner):
        result = runner.invoke(main, ["templates", "load", "nope"])
        assert result.exit_code == 1


class TestSchedule:
    def test_check(self, runner):
        result = runner.invoke(main, ["schedule", "check", "FREQ=WEEKLY;BYDAY=MO", "--date", "2024-01-15"])
        assert result.exit_code == 0
        assert "yes on Monday, Jan 15" in result.output

    def test_check_escaped_newline(self, runner):
        rule = "DTSTART:20240101T000000Z\\nFREQ=DAILY"
        result = runner.invoke(main, ["schedule", "check", rule, "--date", "2023-12-31"])
        assert "Every day: no" in result.output

    def test_check_bad_date(self, runner):
        result = runner.invoke(main, ["schedule", "check", "FREQ=DAILY", "--date", "tomorrow"])
        assert result.exit_code == 2

    def test_next(self, runner):
        result = runner.invoke(
            main,
            ["schedule", "next", "DTSTART:20240101T000000Z\\nFREQ=MONTHLY;BYMONTHDAY=15", "--after", "2024-01-16"],
        )
        assert result.output.strip() == "2024-02-15"

    def test_next_exhausted(self, runner):
        rule = "DTSTART:20240101T000000Z\\nFREQ=DAILY;COUNT=1"
        result = runner.invoke(main, ["schedule", "next", rule, "--after", "2024-06-01"])
        assert "No upcoming occurrence." in result.output
