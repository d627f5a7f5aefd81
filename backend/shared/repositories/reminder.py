"""Repository for reminders table."""

from __future__ import annotations

from datetime import datetime

import asyncpg

from shared.models.reminder import Reminder

_COLUMNS = "id, channel, nick, due_at, text, created_at"


class ReminderRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def add(self, channel: str, nick: str, due_at: datetime, text: str) -> Reminder:
        """Insert a reminder and return it with its generated id."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO reminders (channel, nick, due_at, text)
                VALUES ($1, $2, $3, $4)
                RETURNING {_COLUMNS}
                """,
                channel,
                nick,
                due_at,
                text,
            )
            return Reminder(**dict(row))

    async def get(self, reminder_id: int) -> Reminder | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM reminders WHERE id = $1",
                reminder_id,
            )
            return Reminder(**dict(row)) if row else None

    async def list_for(self, channel: str, nick: str) -> list[Reminder]:
        """Pending reminders created by *nick* in *channel*, soonest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM reminders "
                "WHERE channel = $1 AND lower(nick) = lower($2) ORDER BY due_at, id",
                channel,
                nick,
            )
            return [Reminder(**dict(row)) for row in rows]

    async def list_due(self, now: datetime) -> list[Reminder]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM reminders WHERE due_at <= $1 ORDER BY due_at, id",
                now,
            )
            return [Reminder(**dict(row)) for row in rows]

    async def next_due(self) -> datetime | None:
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT min(due_at) FROM reminders")

    async def delete(self, reminder_id: int) -> bool:
        """Delete a reminder. Returns True if deleted."""
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM reminders WHERE id = $1", reminder_id)
            return result == "DELETE 1"
