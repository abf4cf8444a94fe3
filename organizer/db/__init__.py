"""PostgreSQL persistence: connection handle and the three stores."""

from .connection import Database
from .messages import MessageStore
from .tags import MessageSummary, Tag, TagStore, TagWithCount
from .users import UserStore

__all__ = [
    "Database",
    "MessageStore",
    "MessageSummary",
    "Tag",
    "TagStore",
    "TagWithCount",
    "UserStore",
]
