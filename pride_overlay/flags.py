"""
Pride flag patterns.
This module holds the table of supported flags and renders any of them as an
RGBA8 overlay buffer at a requested resolution.
"""

from enum import Enum
from typing import Dict, Tuple, Union

import numpy as np

from .core import CHANNELS, FlagBuffer
from .errors import UnknownFlagError

RgbaColor = Tuple[int, int, int, int]
Stripe = Tuple[RgbaColor, int]  # color, relative height


def _hex(value: str) -> RgbaColor:
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16), 255)


class PrideFlag(Enum):
    """Supported flags; the value is the display name."""

    RAINBOW = "Rainbow"
    TRANSGENDER = "Transgender"
    BISEXUAL = "Bisexual"
    PANSEXUAL = "Pansexual"
    LESBIAN = "Lesbian"
    NON_BINARY = "Non-binary"
    ASEXUAL = "Asexual"
    GENDERFLUID = "Genderfluid"
    AGENDER = "Agender"
    AROMANTIC = "Aromantic"

    def __str__(self) -> str:
        return self.value


FLAG_STRIPES: Dict[PrideFlag, Tuple[Stripe, ...]] = {
    PrideFlag.RAINBOW: tuple(
        (_hex(c), 1) for c in ("E40303", "FF8C00", "FFED00", "008026", "24408E", "732982")
    ),
    PrideFlag.TRANSGENDER: tuple(
        (_hex(c), 1) for c in ("5BCEFA", "F5A9B8", "FFFFFF", "F5A9B8", "5BCEFA")
    ),
    PrideFlag.BISEXUAL: ((_hex("D60270"), 2), (_hex("9B4F96"), 1), (_hex("0038A8"), 2)),
    PrideFlag.PANSEXUAL: tuple((_hex(c), 1) for c in ("FF218C", "FFD800", "21B1FF")),
    PrideFlag.LESBIAN: tuple(
        (_hex(c), 1) for c in ("D52D00", "EF7627", "FF9A56", "FFFFFF", "D162A4", "B55690", "A30262")
    ),
    PrideFlag.NON_BINARY: tuple((_hex(c), 1) for c in ("FCF434", "FFFFFF", "9C59D1", "2C2C2C")),
    PrideFlag.ASEXUAL: tuple((_hex(c), 1) for c in ("000000", "A3A3A3", "FFFFFF", "800080")),
    PrideFlag.GENDERFLUID: tuple(
        (_hex(c), 1) for c in ("FF76A4", "FFFFFF", "C011D7", "000000", "2F3CBE")
    ),
    PrideFlag.AGENDER: tuple(
        (_hex(c), 1) for c in ("000000", "BCC4C7", "FFFFFF", "B6F583", "FFFFFF", "BCC4C7", "000000")
    ),
    PrideFlag.AROMANTIC: tuple(
        (_hex(c), 1) for c in ("3DA542", "A7D379", "FFFFFF", "A9A9A9", "000000")
    ),
}

# Selection order used by the application's flag picker
ALL_FLAGS: Tuple[PrideFlag, ...] = tuple(PrideFlag)


def get_flag(flag_id: Union[PrideFlag, str, int]) -> PrideFlag:
    """
    Resolve a flag from an enum member, a name, or an index into ALL_FLAGS.

    Names are matched case-insensitively against the member name or display
    name, with "-", "_" and spaces treated alike.

    Raises:
        UnknownFlagError: If nothing matches
    """
    if isinstance(flag_id, PrideFlag):
        return flag_id

    # bool is an int subclass; True/False are not flag indices
    if isinstance(flag_id, int) and not isinstance(flag_id, bool):
        if 0 <= flag_id < len(ALL_FLAGS):
            return ALL_FLAGS[flag_id]
        raise UnknownFlagError(f"Flag index {flag_id} out of range 0..{len(ALL_FLAGS) - 1}")

    if isinstance(flag_id, str):
        key = _normalize(flag_id)
        for flag in ALL_FLAGS:
            if key in (_normalize(flag.name), _normalize(flag.value)):
                return flag

    available = ", ".join(flag.name.lower() for flag in ALL_FLAGS)
    raise UnknownFlagError(f"Unknown flag {flag_id!r}. Available flags: {available}")


def _normalize(name: str) -> str:
    return name.strip().lower().replace("-", "_").replace(" ", "_")


def flag_stripes(flag: Union[PrideFlag, str, int]) -> Tuple[Stripe, ...]:
    """Return the (color, weight) stripe table of a flag, top to bottom."""
    return FLAG_STRIPES[get_flag(flag)]


def create_pride_flag_overlay(flag: Union[PrideFlag, str, int], width: int, height: int) -> FlagBuffer:
    """
    Render a flag as an opaque RGBA8 buffer of the given size.

    Stripes are horizontal and stretched to the full width. Row y takes the
    stripe whose share of the total height contains the row's center.

    Args:
        flag: Flag to render (member, name, or index into ALL_FLAGS)
        width: Output width in pixels
        height: Output height in pixels

    Returns:
        Flag buffer of shape (height, width, 4), dtype uint8

    Raises:
        ValueError: If width or height is less than 1
        UnknownFlagError: If the flag cannot be resolved
    """
    if width < 1 or height < 1:
        raise ValueError(f"Flag dimensions must be positive, got {(width, height)}")

    stripes = flag_stripes(flag)
    colors = np.array([color for color, _ in stripes], dtype=np.uint8)
    weights = np.array([weight for _, weight in stripes], dtype=np.float64)
    edges = np.cumsum(weights)

    centers = (np.arange(height, dtype=np.float64) + 0.5) / height * edges[-1]
    rows = np.searchsorted(edges, centers, side="right")
    rows = np.minimum(rows, len(stripes) - 1)

    row_colors = colors[rows]  # (height, 4)
    return np.ascontiguousarray(np.broadcast_to(row_colors[:, np.newaxis, :], (height, width, CHANNELS)))
