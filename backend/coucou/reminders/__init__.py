from .scheduler import ReminderScheduler, reminder_message

__all__ = ["ReminderScheduler", "reminder_message"]
