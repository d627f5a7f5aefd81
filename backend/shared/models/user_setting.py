"""User setting model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserSetting:
    nick: str
    key: str
    value: str
    updated_at: datetime | None = None
