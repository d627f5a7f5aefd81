"""Typed representation of chat commands.

``Command`` is a closed union: the dispatcher checks at construction that
it has exactly one handler per member.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Union, get_args


# --- Reminder times -------------------------------------------------------


@dataclass(frozen=True)
class Duration:
    """Additive offset from now, calendar aware for months and years."""

    years: int = 0
    months: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0

    def __add__(self, other: Duration) -> Duration:
        return Duration(
            years=self.years + other.years,
            months=self.months + other.months,
            days=self.days + other.days,
            hours=self.hours + other.hours,
            minutes=self.minutes + other.minutes,
        )


@dataclass(frozen=True)
class AtDateTime:
    """An explicit calendar date, optionally with a time of day."""

    day: date
    at: time | None = None


@dataclass(frozen=True)
class AtTime:
    """Next occurrence of a time of day."""

    at: time


@dataclass(frozen=True)
class Tomorrow:
    at: time | None = None


@dataclass(frozen=True)
class OnWeekday:
    """Next occurrence of a weekday (0 = Monday)."""

    weekday: int
    at: time | None = None


ReminderTime = Union[Duration, AtDateTime, AtTime, Tomorrow, OnWeekday]


# --- Commands -------------------------------------------------------------


@dataclass(frozen=True)
class UrlCommand:
    offset: int = 0
    target: str | None = None


@dataclass(frozen=True)
class CryptoCommand:
    coin: str
    target: str | None = None


@dataclass(frozen=True)
class DateCommand:
    target: str | None = None


@dataclass(frozen=True)
class CancerCommand:
    pattern: str | None = None
    target: str | None = None


@dataclass(frozen=True)
class ShoutCoucouCommand:
    pass


@dataclass(frozen=True)
class JokeCommand:
    target: str | None = None


@dataclass(frozen=True)
class HelpCommand:
    topic: str | None = None
    target: str | None = None


@dataclass(frozen=True)
class SetSettingCommand:
    key: str
    value: str


@dataclass(frozen=True)
class UnsetSettingCommand:
    key: str


@dataclass(frozen=True)
class RemindCommand:
    when: ReminderTime
    text: str


@dataclass(frozen=True)
class RemindListCommand:
    pass


@dataclass(frozen=True)
class RemindDeleteCommand:
    reminder_id: int


Command = Union[
    UrlCommand,
    CryptoCommand,
    DateCommand,
    CancerCommand,
    ShoutCoucouCommand,
    JokeCommand,
    HelpCommand,
    SetSettingCommand,
    UnsetSettingCommand,
    RemindCommand,
    RemindListCommand,
    RemindDeleteCommand,
]

COMMAND_TYPES: tuple[type, ...] = get_args(Command)
