"""Reminder model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Reminder:
    """A pending reminder, removed once fired or deleted."""

    id: int
    channel: str
    nick: str
    due_at: datetime
    text: str
    created_at: datetime | None = None
