"""Repository layer for the bot's durable tables."""

from .reminder import ReminderRepository
from .token import TokenRepository
from .user_setting import UserSettingRepository

__all__ = [
    "ReminderRepository",
    "TokenRepository",
    "UserSettingRepository",
]
