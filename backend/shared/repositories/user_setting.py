"""Repository for user_settings table."""

from __future__ import annotations

import asyncpg

from shared.models.user_setting import UserSetting


class UserSettingRepository:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list_all(self) -> list[UserSetting]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT nick, key, value, updated_at FROM user_settings")
            return [UserSetting(**dict(row)) for row in rows]

    async def upsert(self, nick: str, key: str, value: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO user_settings (nick, key, value)
                VALUES ($1, $2, $3)
                ON CONFLICT (nick, key) DO UPDATE SET
                    value      = EXCLUDED.value,
                    updated_at = NOW()
                """,
                nick,
                key,
                value,
            )

    async def delete(self, nick: str, key: str) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM user_settings WHERE nick = $1 AND key = $2",
                nick,
                key,
            )
            return result == "DELETE 1"
