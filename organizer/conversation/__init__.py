"""Tag-assignment conversation: codec, picker rendering and the flow."""

from .codec import ConversationCodec, NewTag, TagChoice, TextMarkerCodec
from .flow import Outcome, State, TagSelectionFlow
from .ui import BUTTON_TAG_LIMIT, UIMode, choose_mode

__all__ = [
    "BUTTON_TAG_LIMIT",
    "ConversationCodec",
    "NewTag",
    "Outcome",
    "State",
    "TagChoice",
    "TagSelectionFlow",
    "TextMarkerCodec",
    "UIMode",
    "choose_mode",
]
