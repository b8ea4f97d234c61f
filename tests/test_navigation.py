"""
Tests for keyboard navigation and its focus guard.
"""

from datetime import date

import pytest

from services.navigation import HELP_TEXT, CalendarNavigator

TODAY = date(2026, 2, 15)


@pytest.fixture
def navigator():
    return CalendarNavigator(TODAY, view="month", week_starts_on=0)


def test_focused_input_swallows_every_key(navigator):
    for key in ("c", "t", "m", "w", "d", "ArrowLeft", "ArrowRight", "?"):
        assert navigator.handle_key(key, TODAY, input_focused=True) is None

    assert navigator.view == "month"
    assert navigator.anchor == TODAY


def test_view_switches(navigator):
    assert navigator.handle_key("w", TODAY).view == "week"
    assert navigator.handle_key("D", TODAY).view == "day"
    assert navigator.handle_key("m", TODAY).view == "month"


def test_arrows_page_current_view(navigator):
    command = navigator.handle_key("ArrowRight", TODAY)
    assert (command.action, command.anchor) == ("next", date(2026, 3, 15))

    navigator.handle_key("w", TODAY)
    command = navigator.handle_key("ArrowLeft", TODAY)
    assert (command.action, command.anchor) == ("previous", date(2026, 3, 8))


def test_today_resets_anchor(navigator):
    navigator.go_to(date(2025, 6, 1))

    command = navigator.handle_key("t", TODAY)

    assert command.action == "today"
    assert command.message == "Jumped to today"
    assert navigator.anchor == TODAY


def test_create_and_help(navigator):
    assert navigator.handle_key("c", TODAY).action == "create"

    command = navigator.handle_key("?", TODAY)
    assert command.action == "help"
    assert command.message == HELP_TEXT


def test_modifier_chords_ignored(navigator):
    assert navigator.handle_key("c", TODAY, ctrl=True) is None
    assert navigator.handle_key("w", TODAY, meta=True) is None
    assert navigator.view == "month"


def test_unknown_key(navigator):
    assert navigator.handle_key("x", TODAY) is None


def test_window_follows_state(navigator):
    navigator.set_view("weekly")
    navigator.go_to(date(2026, 2, 18))

    window = navigator.window()

    assert window.start.date() == date(2026, 2, 15)
    assert window.end.date() == date(2026, 2, 21)
