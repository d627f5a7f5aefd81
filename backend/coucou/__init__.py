"""coucoubot: chat commands, stream go-live notifications and reminders."""

__version__ = "0.4.0"
