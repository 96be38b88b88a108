"""
Packed color helpers.

Colors travel through the pipeline as 32-bit ARGB integers (0xFFRRGGBB) with
the alpha byte always opaque.
"""

from typing import Tuple

import numpy as np

OPAQUE_ALPHA = 0xFF000000


def argb_from_rgb(red: int, green: int, blue: int) -> int:
    """Pack 8-bit channels into an opaque ARGB integer."""
    return OPAQUE_ALPHA | ((red & 0xFF) << 16) | ((green & 0xFF) << 8) | (blue & 0xFF)


def rgb_from_argb(argb: int) -> Tuple[int, int, int]:
    """Unpack an ARGB integer into (red, green, blue)."""
    return (argb >> 16) & 0xFF, (argb >> 8) & 0xFF, argb & 0xFF


def rgb_to_hex(rgb_u8) -> str:
    """Convert an RGB triple to a lowercase #rrggbb string."""
    r, g, b = [int(x) for x in rgb_u8]
    return f"#{r:02x}{g:02x}{b:02x}"


def pack_rgb_array(rgb_u8: np.ndarray) -> np.ndarray:
    """
    Pack an (..., 3) uint8 array into opaque ARGB uint32 values.

    Args:
        rgb_u8: Array whose last axis holds red, green, blue

    Returns:
        uint32 array with the channel axis removed
    """
    rgb = np.asarray(rgb_u8, dtype=np.uint32)
    return (np.uint32(OPAQUE_ALPHA)
            | (rgb[..., 0] << np.uint32(16))
            | (rgb[..., 1] << np.uint32(8))
            | rgb[..., 2])


def unpack_argb_array(argb: np.ndarray) -> np.ndarray:
    """Unpack ARGB uint32 values into an (N, 3) int64 RGB array."""
    packed = np.asarray(argb, dtype=np.uint32)
    return np.stack([
        (packed >> np.uint32(16)) & np.uint32(0xFF),
        (packed >> np.uint32(8)) & np.uint32(0xFF),
        packed & np.uint32(0xFF),
    ], axis=-1).astype(np.int64)
