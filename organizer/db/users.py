"""User upsert: runs on every inbound update."""

from typing import Optional

from ..inbound import TelegramUser
from .connection import Database


class UserStore:
    def __init__(self, db: Database):
        self.db = db

    async def upsert(self, user: TelegramUser) -> int:
        """Create or refresh the user row, return the internal ``users.id``."""
        async with self.db.connection() as conn:
            return await conn.fetchval("""
                INSERT INTO users (telegram_id, username, first_name, last_name, is_active)
                VALUES ($1, $2, $3, $4, true)
                ON CONFLICT (telegram_id) DO UPDATE SET
                    username = EXCLUDED.username,
                    first_name = EXCLUDED.first_name,
                    last_name = EXCLUDED.last_name,
                    updated_at = NOW()
                RETURNING id
            """, user.id, user.username or None, user.first_name or None, user.last_name or None)

    async def resolve(self, telegram_id: int) -> Optional[int]:
        """Internal id for a Telegram user id, None if never seen."""
        async with self.db.connection() as conn:
            return await conn.fetchval(
                "SELECT id FROM users WHERE telegram_id = $1", telegram_id
            )
