"""Tag picker rendering: inline buttons for few tags, numbered text for many."""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..db.tags import Tag
from ..messenger import Button, ForceReplyMarkup, InlineKeyboard, ReplyMarkup
from .codec import ConversationCodec

# Inline keyboards get unwieldy past this; fixed, not configurable
BUTTON_TAG_LIMIT = 20
BUTTONS_PER_ROW = 2

# Telegram rejects longer message texts (UTF-16 code units)
MESSAGE_LIMIT = 4096

CREATE_TAG_LABEL = "➕ Create New Tag"
NO_TAGS_TEXT = "You don't have any tags yet. Click the button below to create your first tag:"
CHOOSE_TAG_TEXT = "Choose a tag or create a new one:"
NEW_TAG_PROMPT_TEXT = "Please reply with the name for your new tag:"


class UIMode(str, Enum):
    BUTTONS = "buttons"
    TEXT = "text"


@dataclass
class Prompt:
    text: str
    markup: ReplyMarkup
    mode: UIMode


def choose_mode(tag_count: int) -> UIMode:
    return UIMode.BUTTONS if tag_count <= BUTTON_TAG_LIMIT else UIMode.TEXT


def render_buttons(tags: Sequence[Tag], message_ref: int, codec: ConversationCodec) -> Prompt:
    rows = []
    for i in range(0, len(tags), BUTTONS_PER_ROW):
        rows.append([
            Button(tag.name, callback_data=codec.encode_tag_choice(tag.id, message_ref))
            for tag in tags[i:i + BUTTONS_PER_ROW]
        ])
    rows.append([Button(CREATE_TAG_LABEL, callback_data=codec.encode_new_tag(message_ref))])

    text = CHOOSE_TAG_TEXT if tags else NO_TAGS_TEXT
    return Prompt(
        text=codec.encode_prompt(text, message_ref),
        markup=InlineKeyboard(rows=rows),
        mode=UIMode.BUTTONS,
    )


def _text_length(text: str) -> int:
    """Length as Telegram counts it, in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def _more_line(hidden: int, total: int) -> str:
    return f"...and {hidden} more. Reply with a tag name, or a number up to {total}."


def render_text(tags: Sequence[Tag], message_ref: int, codec: ConversationCodec) -> Prompt:
    """Numbered list answered by reply.

    The list is cut to fit one Telegram message; hidden tags stay reachable
    by name or by their number in the full list.  The marker is always kept.
    """
    header = [
        f"You have many tags ({len(tags)}). Choose by typing its name or number, or create a new one:",
        "",
    ]
    footer = ["", "Type a tag name/number or create a new tag."]

    used = _text_length(codec.encode_prompt("\n".join(header + footer), message_ref))
    used += _text_length(_more_line(len(tags), len(tags))) + 1

    shown = []
    for i, tag in enumerate(tags, start=1):
        line = f"{i}. {tag.name}"
        cost = _text_length(line) + 1
        if used + cost > MESSAGE_LIMIT:
            break
        shown.append(line)
        used += cost

    lines = header + shown
    if len(shown) < len(tags):
        lines.append(_more_line(len(tags) - len(shown), len(tags)))
    lines.extend(footer)
    return Prompt(
        text=codec.encode_prompt("\n".join(lines), message_ref),
        markup=ForceReplyMarkup(selective=True),
        mode=UIMode.TEXT,
    )


def render_picker(tags: Sequence[Tag], message_ref: int, codec: ConversationCodec) -> Prompt:
    if choose_mode(len(tags)) is UIMode.BUTTONS:
        return render_buttons(tags, message_ref, codec)
    return render_text(tags, message_ref, codec)


def render_new_tag_prompt(message_ref: int, codec: ConversationCodec) -> Prompt:
    return Prompt(
        text=codec.encode_prompt(NEW_TAG_PROMPT_TEXT, message_ref),
        markup=ForceReplyMarkup(selective=True),
        mode=UIMode.TEXT,
    )
