"""
Keyboard-driven calendar navigation.

Shortcuts: c create, t today, m/w/d switch view, ArrowLeft/ArrowRight page,
? help. Nothing is dispatched while a text field has focus.
"""

from dataclasses import dataclass
from datetime import date

from services.time_window import TimeWindow, normalize_view, resolve_window, shift_anchor

HELP_TEXT = (
    "Keyboard shortcuts: C = Create event, T = Today, M = Monthly, "
    "W = Weekly, D = Daily, ← → = Navigate"
)

VIEW_KEYS = {"m": "month", "w": "week", "d": "day"}


@dataclass
class NavigationCommand:
    """What a key press did; `action` is one of create/today/view/previous/next/help."""

    action: str
    view: str
    anchor: date
    message: str | None = None


class CalendarNavigator:
    """Current view and anchor date of one calendar screen."""

    def __init__(self, today: date, view: str = "month", week_starts_on: int | None = None):
        self.view = normalize_view(view)
        self.anchor = today
        self.week_starts_on = week_starts_on

    def window(self) -> TimeWindow:
        if self.week_starts_on is None:
            return resolve_window(self.anchor, self.view)
        return resolve_window(self.anchor, self.view, week_starts_on=self.week_starts_on)

    def set_view(self, view: str) -> None:
        self.view = normalize_view(view)

    def go_to(self, anchor: date) -> None:
        self.anchor = anchor

    def page(self, steps: int) -> None:
        self.anchor = shift_anchor(self.anchor, self.view, steps)

    def handle_key(
        self,
        key: str,
        today: date,
        input_focused: bool = False,
        ctrl: bool = False,
        meta: bool = False,
    ) -> NavigationCommand | None:
        """
        Dispatch a key press. Returns None when the key is ignored.

        Letter shortcuts ignore Ctrl/Meta chords so browser and OS
        shortcuts (copy, tab switching) pass through.
        """
        if input_focused:
            return None

        key = key.lower()
        chord = ctrl or meta

        if key == "arrowleft":
            self.page(-1)
            return NavigationCommand("previous", self.view, self.anchor)
        if key == "arrowright":
            self.page(1)
            return NavigationCommand("next", self.view, self.anchor)
        if key == "?":
            return NavigationCommand("help", self.view, self.anchor, message=HELP_TEXT)

        if chord:
            return None
        if key == "c":
            return NavigationCommand("create", self.view, self.anchor)
        if key == "t":
            self.anchor = today
            return NavigationCommand("today", self.view, self.anchor, message="Jumped to today")
        if key in VIEW_KEYS:
            self.view = VIEW_KEYS[key]
            return NavigationCommand("view", self.view, self.anchor)
        return None
