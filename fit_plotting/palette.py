#!/usr/bin/env python3
"""
Palette - cyclic (color, line style) table used to group like signals.
"""

from typing import List, Sequence, Tuple

# ROOT EColor values: kRed, kRed, kBlack, kBlack, kBlue, kGreen+1
_DEFAULT_COLORS = [632, 632, 1, 1, 600, 417]
_DEFAULT_STYLES = [1, 2, 1, 2, 3, 1]


class Palette:
    def __init__(self, entries: Sequence[Tuple[int, int]]):
        """
        Args:
            entries: Ordered (color, line_style) pairs
        """
        if not entries:
            raise ValueError("Palette needs at least one (color, style) entry")
        self.entries: List[Tuple[int, int]] = [(int(c), int(s)) for c, s in entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, ordinal: int) -> Tuple[int, int]:
        return self.entries[ordinal % len(self.entries)]

    def color(self, ordinal: int) -> int:
        return self[ordinal][0]

    def style(self, ordinal: int) -> int:
        return self[ordinal][1]


def default_palette() -> Palette:
    """Six-entry palette pairing solid and dashed lines of the same color."""
    return Palette(list(zip(_DEFAULT_COLORS, _DEFAULT_STYLES)))
