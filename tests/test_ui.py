"""Tests for tag picker rendering."""

import pytest

from organizer.conversation.codec import TextMarkerCodec
from organizer.conversation.ui import (
    BUTTON_TAG_LIMIT,
    CREATE_TAG_LABEL,
    MESSAGE_LIMIT,
    NO_TAGS_TEXT,
    UIMode,
    choose_mode,
    render_new_tag_prompt,
    render_picker,
)
from organizer.db.tags import Tag
from organizer.messenger import ForceReplyMarkup, InlineKeyboard

codec = TextMarkerCodec()


def _tags(n):
    return [Tag(id=i, name=f"tag{i:02d}") for i in range(1, n + 1)]


@pytest.mark.parametrize("count,expected", [
    (0, UIMode.BUTTONS),
    (1, UIMode.BUTTONS),
    (20, UIMode.BUTTONS),
    (21, UIMode.TEXT),
    (500, UIMode.TEXT),
])
def test_choose_mode_threshold(count, expected):
    assert choose_mode(count) is expected


def test_limit_is_twenty():
    assert BUTTON_TAG_LIMIT == 20


class TestButtons:

    def test_no_tags_only_create_button(self):
        prompt = render_picker([], 9, codec)
        assert prompt.mode is UIMode.BUTTONS
        assert prompt.text.startswith(NO_TAGS_TEXT)
        assert codec.decode_prompt(prompt.text) == 9
        assert len(prompt.markup.rows) == 1
        button = prompt.markup.rows[0][0]
        assert button.label == CREATE_TAG_LABEL
        assert button.callback_data == "new_tag:9"

    def test_two_per_row_then_create_row(self):
        prompt = render_picker(_tags(5), 9, codec)
        assert isinstance(prompt.markup, InlineKeyboard)
        sizes = [len(row) for row in prompt.markup.rows]
        assert sizes == [2, 2, 1, 1]
        assert prompt.markup.rows[-1][0].label == CREATE_TAG_LABEL

    def test_button_data_carries_tag_and_message(self):
        prompt = render_picker(_tags(2), 77, codec)
        first = prompt.markup.rows[0]
        assert [b.label for b in first] == ["tag01", "tag02"]
        assert [b.callback_data for b in first] == ["tag:1:77", "tag:2:77"]

    def test_twenty_tags_still_buttons(self):
        prompt = render_picker(_tags(20), 1, codec)
        assert prompt.mode is UIMode.BUTTONS
        assert len(prompt.markup.rows) == 11


class TestText:

    def test_numbered_list_in_order(self):
        tags = _tags(21)
        prompt = render_picker(tags, 33, codec)
        assert prompt.mode is UIMode.TEXT
        assert isinstance(prompt.markup, ForceReplyMarkup)
        assert prompt.markup.selective is True
        assert "You have many tags (21)" in prompt.text
        assert "1. tag01" in prompt.text
        assert "21. tag21" in prompt.text
        assert prompt.text.index("2. tag02") < prompt.text.index("3. tag03")
        assert codec.decode_prompt(prompt.text) == 33
        assert codec.is_tag_prompt(prompt.text)

    def test_long_list_cut_to_one_message(self):
        tags = [Tag(id=i, name=f"project-tag-{i:04d}") for i in range(1, 301)]
        prompt = render_picker(tags, 987654321, codec)

        assert len(prompt.text) <= MESSAGE_LIMIT
        assert codec.decode_prompt(prompt.text) == 987654321
        assert "1. project-tag-0001" in prompt.text
        assert "more. Reply with a tag name, or a number up to 300." in prompt.text

    def test_limit_counts_utf16_units(self):
        # each name is 1000 UTF-16 units but only 500 characters
        tags = [Tag(id=i, name="\U0001F3F7" * 500) for i in range(1, 30)]
        prompt = render_picker(tags, 5, codec)

        assert len(prompt.text.encode("utf-16-le")) // 2 <= MESSAGE_LIMIT
        assert codec.decode_prompt(prompt.text) == 5

    def test_oversized_name_still_keeps_marker(self):
        tags = [Tag(id=1, name="x" * 5000)] + _tags(21)
        prompt = render_picker(tags, 8, codec)

        assert len(prompt.text) <= MESSAGE_LIMIT
        assert "...and 22 more." in prompt.text
        assert codec.decode_prompt(prompt.text) == 8


def test_new_tag_prompt():
    prompt = render_new_tag_prompt(12, codec)
    assert isinstance(prompt.markup, ForceReplyMarkup)
    assert codec.decode_prompt(prompt.text) == 12
    assert codec.is_tag_prompt(prompt.text)
