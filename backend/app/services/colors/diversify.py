"""
Palette diversification.

Greedy hue-based deduplication of quantized colors: candidates are visited in
population order and kept only when their hue is far enough from every color
already kept.
"""

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
from loguru import logger

from .hct import PerceptualColor, hct_from_rgb_array
from .quantizer import QuantizedEntry
from .utils import unpack_argb_array

DEFAULT_HUE_THRESHOLD = 10.0
MAX_PALETTE_COLORS = 100


@dataclass(frozen=True)
class DiversifiedColor:
    """An accepted palette color with its source population."""
    argb: int
    hct: PerceptualColor
    population: int


def hue_difference(a: float, b: float, mode: str = "absolute") -> float:
    """
    Distance between two hues in degrees.

    ``absolute`` is the plain ``|a - b|``, which treats 359 and 1 as 358
    degrees apart. ``circular`` measures around the hue circle.
    """
    diff = abs(a - b)
    if mode == "circular":
        return min(diff, 360.0 - diff)
    if mode == "absolute":
        return diff
    raise ValueError(f"Unknown hue distance mode: {mode}")


def diversify(entries: Sequence[QuantizedEntry], num_colors: int,
              threshold: float = DEFAULT_HUE_THRESHOLD,
              hue_distance: str = "absolute") -> List[DiversifiedColor]:
    """
    Select up to ``num_colors`` entries whose hues are pairwise distinct.

    Args:
        entries: Quantized colors in any order
        num_colors: Requested palette size (1-100)
        threshold: Minimum hue difference in degrees between accepted colors
        hue_distance: "absolute" or "circular"

    Returns:
        Accepted colors in population-descending order; may be shorter than
        ``num_colors`` when the image lacks distinct hues
    """
    if not 1 <= num_colors <= MAX_PALETTE_COLORS:
        raise ValueError(f"num_colors must be between 1 and {MAX_PALETTE_COLORS}")
    if not entries:
        return []

    # Stable sort keeps the quantizer's order among equal populations.
    ranked = sorted(entries, key=lambda entry: -entry.population)
    rgb = unpack_argb_array(np.array([entry.argb for entry in ranked], dtype=np.uint32))
    hues, chromas, tones = hct_from_rgb_array(rgb)

    accepted: List[DiversifiedColor] = []
    for entry, hue, chroma, tone in zip(ranked, hues, chromas, tones):
        hue = float(hue)
        if any(hue_difference(hue, kept.hct.hue, hue_distance) < threshold for kept in accepted):
            continue
        accepted.append(DiversifiedColor(
            argb=entry.argb,
            hct=PerceptualColor(hue=hue, chroma=float(chroma), tone=float(tone)),
            population=entry.population,
        ))
        if len(accepted) >= num_colors:
            break

    logger.debug(f"Diversified {len(ranked)} candidates into {len(accepted)} colors")
    return accepted
