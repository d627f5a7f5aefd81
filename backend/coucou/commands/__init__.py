"""Command grammar: typed commands, the line parser and reminder time resolution."""

from .parser import parse_command, parse_duration, strip_prefix
from .timespec import resolve_due
from .types import COMMAND_TYPES, Command, ReminderTime

__all__ = [
    "COMMAND_TYPES",
    "Command",
    "ReminderTime",
    "parse_command",
    "parse_duration",
    "resolve_due",
    "strip_prefix",
]
