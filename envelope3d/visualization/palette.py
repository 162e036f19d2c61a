"""
Categorical color palette.

Colors are assigned by first-seen position of a value, cycling through a
fixed palette of 12 opaque colors. The same ordered input always gets the
same colors; a different set of values may shift them.
"""

from __future__ import annotations

from typing import Any, Hashable, Iterable

RGBA = tuple[int, int, int, float]


def hex_to_rgba(hex_color: str, alpha: float = 1.0) -> RGBA:
    """Convert '#rrggbb' to an (r, g, b, a) tuple."""
    value = hex_color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #rrggbb, got {hex_color!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16), alpha)


def rgba_to_hex(color: RGBA) -> str:
    r, g, b, _ = color
    return f"#{r:02x}{g:02x}{b:02x}"


PALETTE_HEX = (
    "#fc3e5a", "#fce138", "#4c81cd", "#f1983c",
    "#48885c", "#a553b7", "#fff799", "#b1a9d0",
    "#6ecffc", "#fc6f84", "#6af689", "#fcd27e",
)

PALETTE: tuple[RGBA, ...] = tuple(hex_to_rgba(c) for c in PALETTE_HEX)

# Fixed colors outside the categorical palette
CONTEXT_COLOR: RGBA = (128, 128, 128, 0.7)
DEFAULT_FILL_COLOR: RGBA = (255, 100, 100, 0.8)
OUTLINE_COLOR: RGBA = (255, 255, 255, 1.0)


class CategoricalColorAssigner:
    """Map attribute values to palette colors by first-seen index."""

    def __init__(self, palette: Iterable[RGBA] = PALETTE):
        self.palette = tuple(palette)
        if not self.palette:
            raise ValueError("Palette must contain at least one color")

    def color_for(self, value: Any, index: int) -> RGBA:
        return self.palette[index % len(self.palette)]

    def assign(self, values: Iterable[Hashable]) -> dict[Hashable, RGBA]:
        """Colors for distinct values, in first-seen order."""
        colors: dict[Hashable, RGBA] = {}
        for value in values:
            if value not in colors:
                colors[value] = self.color_for(value, len(colors))
        return colors
