"""Tests for the block palette helpers."""

from __future__ import annotations

import pytest

from farmview.core.palette import (
    BLOCK_COLORS,
    TRANSPARENCY_PRESETS,
    color_label,
    fill_rgba,
    normalize_hex,
)


def test_normalize_hex_uppercases_and_adds_hash() -> None:
    """normalize_hex should return #RRGGBB in upper case."""
    assert normalize_hex("10b981") == "#10B981"
    assert normalize_hex(" #ef4444 ") == "#EF4444"


@pytest.mark.parametrize("value", ["", "#FFF", "#GGGGGG", "red"])
def test_normalize_hex_rejects_invalid(value: str) -> None:
    """normalize_hex should raise ValueError for non six-digit colours."""
    with pytest.raises(ValueError):
        normalize_hex(value)


def test_color_label_names_palette_status() -> None:
    """color_label should describe palette colours and echo others."""
    assert color_label("#10b981") == "Green - Planted"
    assert color_label("#06B6D4") == "Turquoise - Drain"
    assert color_label("#123456") == "#123456"
    assert color_label("nope") == "nope"


def test_fill_rgba_uses_transparency_as_alpha() -> None:
    """fill_rgba should split the hex and scale alpha to 0..255."""
    assert fill_rgba("#10B981", 0.4) == (16, 185, 129, 102)
    assert fill_rgba("#FFFFFF", 0.0)[3] == 0
    assert fill_rgba("#FFFFFF", 2.0)[3] == 255
    assert fill_rgba("bad", 1.0) == (16, 185, 129, 255)


def test_palette_has_nine_colours_and_five_presets() -> None:
    """The palette should expose nine colours and the transparency presets."""
    assert len(BLOCK_COLORS) == 9
    assert [c.label for c in BLOCK_COLORS][:3] == ["Green", "Yellow", "Red"]
    assert TRANSPARENCY_PRESETS == (0.0, 0.2, 0.4, 0.6, 0.8)
