"""Block colour palette, cane options and fill style helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass

from farmview.core.models import DEFAULT_BLOCK_COLOR, DEFAULT_TRANSPARENCY


@dataclass(frozen=True)
class BlockColor:
    """Palette entry: hex value, colour name and the field status it marks."""

    value: str
    label: str
    status: str


BLOCK_COLORS: tuple[BlockColor, ...] = (
    BlockColor("#10B981", "Green", "Planted"),
    BlockColor("#F59E0B", "Yellow", "Mature"),
    BlockColor("#EF4444", "Red", "Problems"),
    BlockColor("#F97316", "Orange", "Harvesting"),
    BlockColor("#8B5CF6", "Purple", "Application"),
    BlockColor("#FFFFFF", "White", "Empty"),
    BlockColor("#3B82F6", "Blue", "Irrigation"),
    BlockColor("#EC4899", "Pink", "Test"),
    BlockColor("#06B6D4", "Turquoise", "Drain"),
)

CANE_VARIETIES: tuple[str, ...] = (
    "SP80-1842",
    "SP81-3250",
    "RB92579",
    "RB867515",
    "SP94-2775",
    "CTC4",
    "CTC9",
    "CTC15",
    "VAT90212",
    "SP91-1285",
)

CANE_AGES: tuple[tuple[str, str], ...] = (
    ("plant-cane", "Plant Cane"),
    ("1st-stubble", "1st Stubble"),
    ("2nd-stubble", "2nd Stubble"),
    ("3rd-stubble", "3rd Stubble"),
    ("4th-stubble", "4th Stubble"),
    ("5th-stubble", "5th Stubble"),
    ("6th-stubble", "6th Stubble"),
    ("7th-stubble", "7th Stubble"),
    ("fallow", "Fallow"),
)

TRANSPARENCY_PRESETS: tuple[float, ...] = (0.0, 0.2, 0.4, 0.6, 0.8)

DELETE_HIGHLIGHT = ("#EF4444", 0.7)

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


def normalize_hex(color: str) -> str:
    """Return ``#RRGGBB`` in upper case.

    Raises
    ------
    ValueError
        Raised when ``color`` is not a six-digit hex colour.
    """
    match = _HEX_RE.match(str(color).strip())
    if match is None:
        raise ValueError(f"Invalid hex color: {color!r}")
    return f"#{match.group(1).upper()}"


def color_label(color: str) -> str:
    """Return ``"<label> - <status>"`` for palette colours, else the hex."""
    try:
        value = normalize_hex(color)
    except ValueError:
        return str(color)
    for entry in BLOCK_COLORS:
        if entry.value == value:
            return f"{entry.label} - {entry.status}"
    return value


def fill_rgba(color: str, transparency: float) -> tuple[int, int, int, int]:
    """Fill colour with the stored transparency used as alpha.

    Parameters
    ----------
    color : str
        Hex fill colour; invalid values fall back to the default green.
    transparency : float
        Stored block transparency in ``[0, 1]``.

    Returns
    -------
    tuple[int, int, int, int]
        RGBA components in ``0..255``.
    """
    try:
        value = normalize_hex(color)
    except ValueError:
        value = DEFAULT_BLOCK_COLOR
    if transparency is None:
        transparency = DEFAULT_TRANSPARENCY
    alpha = round(min(max(float(transparency), 0.0), 1.0) * 255)
    return (
        int(value[1:3], 16),
        int(value[3:5], 16),
        int(value[5:7], 16),
        alpha,
    )
