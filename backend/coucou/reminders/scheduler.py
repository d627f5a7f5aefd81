"""Durable reminders fired at their due time."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from coucou.core.clock import Clock, utcnow
from coucou.core.outbox import Outbox
from shared.models.reminder import Reminder
from shared.repositories.reminder import ReminderRepository

LOGGER = logging.getLogger("Reminders")

POLL_INTERVAL = 60.0


def reminder_message(reminder: Reminder) -> str:
    return f"{reminder.nick}: {reminder.text}"


class ReminderScheduler:
    """Persists reminders and sends each one once it is due.

    A reminder is deleted only after its message has been handed to the
    outbox, so a crash between the two sends it again on restart.
    """

    def __init__(
        self,
        repo: ReminderRepository,
        outbox: Outbox,
        *,
        clock: Clock = utcnow,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.repo = repo
        self.outbox = outbox
        self.poll_interval = poll_interval
        self._clock = clock
        self._wakeup = asyncio.Event()

    async def add(self, channel: str, nick: str, due_at: datetime, text: str) -> Reminder:
        reminder = await self.repo.add(channel, nick, due_at, text)
        LOGGER.info(f"Reminder {reminder.id} for {nick} in {channel} due at {due_at.isoformat()}")
        self._wakeup.set()
        return reminder

    async def list_for(self, channel: str, nick: str) -> list[Reminder]:
        return await self.repo.list_for(channel, nick)

    async def delete(self, reminder_id: int, nick: str) -> bool:
        """Delete a reminder owned by *nick*."""
        reminder = await self.repo.get(reminder_id)
        if reminder is None or reminder.nick.lower() != nick.lower():
            return False
        deleted = await self.repo.delete(reminder_id)
        if deleted:
            LOGGER.info(f"Reminder {reminder_id} deleted by {nick}")
        return deleted

    async def fire_due(self, now: datetime | None = None) -> int:
        """Send and remove every reminder due at *now*. Returns the number fired."""
        now = now or self._clock()
        fired = 0
        for reminder in await self.repo.list_due(now):
            await self.outbox.send(reminder.channel, reminder_message(reminder))
            await self.repo.delete(reminder.id)
            LOGGER.info(f"Reminder {reminder.id} fired for {reminder.nick} in {reminder.channel}")
            fired += 1
        return fired

    async def _next_wait(self) -> float:
        next_due = await self.repo.next_due()
        if next_due is None:
            return self.poll_interval
        delay = (next_due - self._clock()).total_seconds()
        return min(max(delay, 0.0), self.poll_interval)

    async def run(self) -> None:
        """Fire due reminders, then sleep until the next one is due.

        A newly added reminder wakes the loop early; the wait never exceeds
        the poll interval.
        """
        LOGGER.info("Reminder scheduler started")
        while True:
            self._wakeup.clear()
            try:
                await self.fire_due()
                delay = await self._next_wait()
            except Exception as e:
                LOGGER.error(f"Error in reminder loop: {type(e).__name__}: {e}")
                delay = self.poll_interval

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
