"""Data models for the bot's durable tables."""

from .reminder import Reminder
from .token import Token
from .user_setting import UserSetting

__all__ = [
    "Reminder",
    "Token",
    "UserSetting",
]
