"""Tests for the colour visibility filter."""

from __future__ import annotations

from farmview.core.color_filter import ColorFilter
from farmview.core.models import Block


def _blocks() -> list[Block]:
    return [
        Block(name="a", color="#10b981"),
        Block(name="b", color="#EF4444"),
        Block(name="c", color="#10B981"),
    ]


def test_new_colours_are_selected_automatically() -> None:
    """Without a default selection every colour should start visible."""
    color_filter = ColorFilter(_blocks())

    assert color_filter.available_colors == ["#10B981", "#EF4444"]
    assert color_filter.selected_colors == ["#10B981", "#EF4444"]
    assert color_filter.visible_blocks == 3
    assert color_filter.count_for("#10b981") == 2


def test_toggle_hides_matching_blocks() -> None:
    """Unchecking a colour should drop its blocks from the filtered list."""
    color_filter = ColorFilter(_blocks())

    color_filter.toggle("#10B981", False)

    assert [b.name for b in color_filter.filtered_blocks] == ["b"]
    assert color_filter.total_blocks == 3
    assert not color_filter.is_selected("#10b981")


def test_unchecked_colour_stays_hidden_after_reload() -> None:
    """Reloading blocks should keep a colour the user hid."""
    color_filter = ColorFilter(_blocks())
    color_filter.toggle("#EF4444", False)

    color_filter.set_blocks(_blocks() + [Block(name="d", color="#3B82F6")])

    assert color_filter.selected_colors == ["#10B981", "#3B82F6"]
    assert color_filter.visible_blocks == 3


def test_explicit_default_selection_disables_auto_select() -> None:
    """With a default selection new colours should not be shown."""
    color_filter = ColorFilter(_blocks(), default_selected=["#ef4444"])

    assert color_filter.selected_colors == ["#EF4444"]
    assert [b.name for b in color_filter.filtered_blocks] == ["b"]

    color_filter.select_all()
    assert color_filter.visible_blocks == 3


def test_empty_selection_shows_nothing() -> None:
    """An empty selection should filter out every block."""
    color_filter = ColorFilter(_blocks())

    color_filter.set_selected([])

    assert color_filter.filtered_blocks == []
