"""TagStore: per-user tags, message links and the read side."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import asyncpg

from ..errors import NotFound, NotFoundOrForbidden, StoreError
from .connection import Database

logger = logging.getLogger("organizer.db.tags")


@dataclass
class Tag:
    id: int
    name: str
    color: Optional[str] = None


@dataclass
class TagWithCount:
    id: int
    name: str
    color: Optional[str] = None
    created_at: Optional[datetime] = None
    message_count: int = 0


@dataclass
class MessageSummary:
    id: int
    telegram_message_id: int
    message_type: str
    text_content: Optional[str] = None
    caption: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None
    forwarded_from: Optional[str] = None
    urls: list[str] = field(default_factory=list)
    hashtags: list[str] = field(default_factory=list)


class TagStore:
    def __init__(self, db: Database):
        self.db = db

    async def list_for_user(self, user_id: int) -> list[Tag]:
        """User's tags by name.

        The order is what numbered-text prompts and replies agree on, so it
        must stay deterministic.
        """
        async with self.db.connection() as conn:
            rows = await conn.fetch(
                "SELECT id, name, color FROM tags WHERE user_id = $1 ORDER BY name, id",
                user_id,
            )
        return [Tag(id=row["id"], name=row["name"], color=row["color"]) for row in rows]

    async def get_or_create(self, user_id: int, name: str) -> int:
        """Tag id for (user_id, name), inserting the tag if needed.

        Two invocations can race on the insert; losing the race on the
        unique constraint just means the row exists now, so look it up again.
        """
        async with self.db.connection() as conn:
            tag_id = await conn.fetchval(
                "SELECT id FROM tags WHERE user_id = $1 AND name = $2", user_id, name,
            )
            if tag_id is not None:
                return tag_id
            try:
                tag_id = await conn.fetchval(
                    "INSERT INTO tags (user_id, name) VALUES ($1, $2) RETURNING id",
                    user_id, name,
                )
                logger.info(f"Created tag '{name}' for user {user_id}")
                return tag_id
            except asyncpg.UniqueViolationError:
                logger.debug(f"Tag '{name}' created concurrently for user {user_id}, re-reading")
                tag_id = await conn.fetchval(
                    "SELECT id FROM tags WHERE user_id = $1 AND name = $2", user_id, name,
                )
        if tag_id is None:
            raise StoreError(f"tag '{name}' vanished after unique violation")
        return tag_id

    async def get_name(self, user_id: int, tag_id: int) -> str:
        """Tag name, scoped to the owner.

        Raises:
            NotFound: tag doesn't exist or belongs to someone else.
        """
        async with self.db.connection() as conn:
            name = await conn.fetchval(
                "SELECT name FROM tags WHERE id = $1 AND user_id = $2", tag_id, user_id,
            )
        if name is None:
            raise NotFound(f"tag {tag_id} not found for user {user_id}")
        return name

    async def link(self, message_id: int, tag_id: int):
        """Attach a tag to a message. Re-linking the same pair is a no-op."""
        async with self.db.connection() as conn:
            await conn.execute("""
                INSERT INTO message_tags (message_id, tag_id) VALUES ($1, $2)
                ON CONFLICT (message_id, tag_id) DO NOTHING
            """, message_id, tag_id)

    # ── Read side ────────────────────────────────────────────

    async def list_with_counts(self, user_id: int) -> list[TagWithCount]:
        async with self.db.connection() as conn:
            rows = await conn.fetch("""
                SELECT t.id, t.name, t.color, t.created_at, COUNT(mt.message_id) AS message_count
                FROM tags t
                LEFT JOIN message_tags mt ON t.id = mt.tag_id
                WHERE t.user_id = $1
                GROUP BY t.id, t.name, t.color, t.created_at
                ORDER BY message_count DESC, t.name ASC
            """, user_id)
        return [TagWithCount(**dict(row)) for row in rows]

    async def list_messages_for_tag(self, user_id: int, tag_id: int) -> list[MessageSummary]:
        """Messages carrying the tag, newest first.

        Raises:
            NotFoundOrForbidden: the tag is not this user's (or doesn't exist).
        """
        async with self.db.connection() as conn:
            owned = await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM tags WHERE id = $1 AND user_id = $2)",
                tag_id, user_id,
            )
            if not owned:
                raise NotFoundOrForbidden(f"tag {tag_id} not found or access denied")
            rows = await conn.fetch("""
                SELECT m.id, m.telegram_message_id, m.message_type, m.text_content, m.caption,
                       m.file_name, m.file_size, m.created_at, m.forwarded_from,
                       m.urls, m.hashtags
                FROM messages m
                INNER JOIN message_tags mt ON m.id = mt.message_id
                WHERE mt.tag_id = $1 AND m.user_id = $2
                ORDER BY m.created_at DESC
            """, tag_id, user_id)

        messages = []
        for row in rows:
            data = dict(row)
            data["urls"] = list(data.get("urls") or [])
            data["hashtags"] = list(data.get("hashtags") or [])
            messages.append(MessageSummary(**data))
        return messages
