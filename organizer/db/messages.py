"""MessageStore: persist ingested messages and map Telegram ids back to rows."""

import logging

import asyncpg

from ..errors import Conflict, NotFound
from ..extract import MessageRecord
from .connection import Database

logger = logging.getLogger("organizer.db.messages")


class MessageStore:
    def __init__(self, db: Database):
        self.db = db

    async def save(self, user_id: int, record: MessageRecord) -> int:
        """Insert one message row and return its id.

        Raises:
            Conflict: the (user_id, telegram_message_id) pair is already stored.
        """
        provenance = record.provenance
        async with self.db.connection() as conn:
            try:
                return await conn.fetchval("""
                    INSERT INTO messages (
                        user_id, telegram_message_id, message_type, text_content, caption,
                        file_id, file_name, file_size, mime_type, duration,
                        forwarded_date, forwarded_from, urls, hashtags, mentions
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
                    RETURNING id
                """,
                    user_id, record.telegram_message_id, record.message_type.value,
                    record.text_content, record.caption,
                    record.file.file_id, record.file.file_name, record.file.file_size,
                    record.file.mime_type, record.file.duration,
                    provenance.forwarded_date if provenance else None,
                    provenance.forwarded_from if provenance else None,
                    list(record.urls), list(record.hashtags), list(record.mentions),
                )
            except asyncpg.UniqueViolationError as e:
                logger.info(
                    f"Message {record.telegram_message_id} already stored for user {user_id}"
                )
                raise Conflict(f"message {record.telegram_message_id} already stored") from e

    async def resolve_id(self, user_id: int, telegram_message_id: int) -> int:
        """Internal row id for a Telegram message id, scoped to the user.

        Raises:
            NotFound: no such message for this user.
        """
        async with self.db.connection() as conn:
            row_id = await conn.fetchval(
                "SELECT id FROM messages WHERE user_id = $1 AND telegram_message_id = $2",
                user_id, telegram_message_id,
            )
        if row_id is None:
            raise NotFound(f"message {telegram_message_id} not found for user {user_id}")
        return row_id
