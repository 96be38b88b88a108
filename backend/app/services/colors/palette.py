"""
Palette assembly.

Runs quantization, hue diversification and the HCT inverse projection for one
pixel buffer, then pads the result so exactly ``num_colors`` entries come back.
"""

import time
from typing import List, Sequence, TypeVar

import numpy as np
from loguru import logger

from app.config import config
from app.errors import InsufficientPaletteError
from app.schemas import PaletteEntry
from .diversify import diversify, DiversifiedColor
from .hct import rgb_from_hct_array
from .quantizer import quantize
from .utils import rgb_to_hex

T = TypeVar("T")


def ensure_palette_size(palette: Sequence[T], num_colors: int) -> List[T]:
    """
    Pad or truncate a palette to exactly ``num_colors`` entries.

    Slots past the accepted colors are filled by cycling through them in
    order, so slot ``i`` holds ``palette[i % len(palette)]``.

    Raises:
        InsufficientPaletteError: If ``palette`` is empty
    """
    accepted = len(palette)
    if accepted == 0:
        raise InsufficientPaletteError("No colors could be extracted from the image.")

    result: List[T] = [None] * num_colors
    for i in range(num_colors):
        result[i] = palette[i % accepted]
    return result


def to_palette_entries(colors: Sequence[DiversifiedColor]) -> List[PaletteEntry]:
    """Convert accepted colors to display entries through the HCT inverse."""
    if not colors:
        return []

    hues = np.array([color.hct.hue for color in colors])
    chromas = np.array([color.hct.chroma for color in colors])
    tones = np.array([color.hct.tone for color in colors])
    rgb = rgb_from_hct_array(hues, chromas, tones)

    entries = []
    for color, (red, green, blue) in zip(colors, rgb):
        entries.append(PaletteEntry(
            hex=rgb_to_hex((red, green, blue)),
            red=int(red),
            green=int(green),
            blue=int(blue),
            hue=round(color.hct.hue, 4) % 360.0,
            chroma=max(round(color.hct.chroma, 4), 0.0),
            tone=min(max(round(color.hct.tone, 4), 0.0), 100.0),
            population=color.population,
        ))
    return entries


def generate_palette(pixels: np.ndarray, num_colors: int = 16,
                     pool_size: int = None, hue_threshold: float = None,
                     hue_distance: str = None) -> List[PaletteEntry]:
    """
    Extract a palette of exactly ``num_colors`` colors from packed pixels.

    Args:
        pixels: Packed opaque ARGB samples
        num_colors: Requested palette size (1-100)
        pool_size: Quantizer pool size (default from config)
        hue_threshold: Minimum hue separation in degrees (default from config)
        hue_distance: "absolute" or "circular" (default from config)

    Returns:
        List of PaletteEntry, accepted colors first in population order,
        followed by cyclic repeats when too few distinct hues exist

    Raises:
        EmptyImageError: If ``pixels`` is empty
        InsufficientPaletteError: If no color survives diversification
    """
    pool_size = pool_size or config.POOL_SIZE
    hue_threshold = config.HUE_THRESHOLD if hue_threshold is None else hue_threshold
    hue_distance = hue_distance or config.HUE_DISTANCE

    start_time = time.time()
    quantized = quantize(pixels, max_colors=pool_size)
    quantize_ms = (time.time() - start_time) * 1000

    accepted = diversify(quantized, num_colors, threshold=hue_threshold, hue_distance=hue_distance)
    entries = ensure_palette_size(to_palette_entries(accepted), num_colors)

    logger.info(
        f"Palette generated: {len(quantized)} quantized, {len(accepted)} accepted, "
        f"{num_colors} returned (quantize {quantize_ms:.1f}ms)"
    )
    return entries
