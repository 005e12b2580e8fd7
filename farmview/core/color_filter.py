"""Colour-based visibility filter for the block map."""

from __future__ import annotations

from typing import Iterable, Sequence

from farmview.core.models import DEFAULT_BLOCK_COLOR, Block


def _block_color(block: Block) -> str:
    return (block.color or DEFAULT_BLOCK_COLOR).upper()


class ColorFilter:
    """Track which block colours are shown on the map.

    The available colours are the unique colours of the loaded blocks, in
    first-seen order. Without an explicit default selection, a colour that
    appears for the first time is selected as well.

    Examples
    --------
    >>> f = ColorFilter([Block(name="a", color="#10B981")])
    >>> f.selected_colors
    ['#10B981']
    >>> f.toggle("#10B981", False)
    >>> f.filtered_blocks
    []
    """

    def __init__(
        self,
        blocks: Iterable[Block] = (),
        default_selected: Sequence[str] | None = None,
    ) -> None:
        self._blocks: list[Block] = []
        self._available: list[str] = []
        self._auto_select = default_selected is None
        self._selected: list[str] = (
            [c.upper() for c in default_selected] if default_selected else []
        )
        self.set_blocks(blocks)

    @property
    def available_colors(self) -> list[str]:
        return list(self._available)

    @property
    def selected_colors(self) -> list[str]:
        return list(self._selected)

    def set_blocks(self, blocks: Iterable[Block]) -> None:
        """Replace the block list and refresh available colours."""
        self._blocks = list(blocks)
        available = []
        for block in self._blocks:
            color = _block_color(block)
            if color not in available:
                available.append(color)
        new_colors = [c for c in available if c not in self._available]
        self._available = available
        if self._auto_select:
            for color in new_colors:
                if color not in self._selected:
                    self._selected.append(color)

    def set_selected(self, colors: Iterable[str]) -> None:
        self._selected = []
        for color in colors:
            color = color.upper()
            if color not in self._selected:
                self._selected.append(color)

    def toggle(self, color: str, checked: bool) -> None:
        """Add or remove one colour from the selection."""
        color = color.upper()
        if checked and color not in self._selected:
            self._selected.append(color)
        elif not checked and color in self._selected:
            self._selected.remove(color)

    def select_all(self) -> None:
        self.set_selected(self._available)

    def is_selected(self, color: str) -> bool:
        return color.upper() in self._selected

    @property
    def filtered_blocks(self) -> list[Block]:
        """Blocks whose colour is selected; empty selection shows none."""
        return [b for b in self._blocks if _block_color(b) in self._selected]

    @property
    def total_blocks(self) -> int:
        return len(self._blocks)

    @property
    def visible_blocks(self) -> int:
        return len(self.filtered_blocks)

    def count_for(self, color: str) -> int:
        color = color.upper()
        return sum(1 for b in self._blocks if _block_color(b) == color)
