"""
Color quantization for palette extraction.

Reduces a multiset of packed ARGB pixels to at most ``max_colors``
representative colors with population counts. Two stages:

1. Box splitting: the RGB cube holding the image's distinct colors is cut
   recursively, always splitting the box with the largest population-weighted
   error along its channel of greatest variance, until the pool is full.
2. Refinement: weighted k-means seeded with the box centroids. Distances are
   luminance-weighted RGB distances, implemented by scaling each channel by
   the square root of its weight before clustering.
"""

import time
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

import numpy as np
from loguru import logger
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning

from app.config import config
from app.errors import EmptyImageError
from .utils import pack_rgb_array, unpack_argb_array

DEFAULT_POOL_SIZE = 256

# Luminance sensitivity of the red, green and blue channels.
CHANNEL_WEIGHTS = np.array([0.299, 0.587, 0.114])
_CHANNEL_SCALE = np.sqrt(CHANNEL_WEIGHTS)


@dataclass(frozen=True)
class QuantizedEntry:
    """A representative color and the number of source pixels it stands for."""
    argb: int
    population: int


class RefinementState(str, Enum):
    """States of the bounded k-means refinement loop."""
    ASSIGNING = "assigning"
    CONVERGED = "converged"
    ITERATION_CAP_REACHED = "iteration-cap-reached"


@dataclass
class _Box:
    """A slice of the distinct-color table, addressed by row indices."""
    indices: np.ndarray
    error: float


def count_colors(pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Histogram packed pixels.

    Returns:
        Tuple of (distinct ARGB values ascending, counts)
    """
    packed = np.asarray(pixels, dtype=np.uint32).ravel()
    return np.unique(packed, return_counts=True)


def _box_error(colors: np.ndarray, weights: np.ndarray) -> float:
    """Population-weighted, channel-weighted sum of squared error around the centroid."""
    total = weights.sum()
    mean = (colors * weights[:, None]).sum(axis=0) / total
    sq = ((colors - mean) ** 2) * CHANNEL_WEIGHTS
    return float((sq.sum(axis=1) * weights).sum())


def _split_box(box: _Box, colors: np.ndarray, weights: np.ndarray) -> Tuple[_Box, _Box]:
    """Split a box at the weighted median of its highest-variance channel."""
    box_colors = colors[box.indices]
    box_weights = weights[box.indices]
    total = box_weights.sum()
    mean = (box_colors * box_weights[:, None]).sum(axis=0) / total
    variance = (((box_colors - mean) ** 2) * box_weights[:, None]).sum(axis=0) * CHANNEL_WEIGHTS
    axis = int(np.argmax(variance))

    # Stable sort keeps ties in ARGB order, which keeps splits deterministic.
    order = np.argsort(box_colors[:, axis], kind="stable")
    cumulative = np.cumsum(box_weights[order])
    cut = int(np.searchsorted(cumulative, total / 2.0, side="left")) + 1
    cut = min(max(cut, 1), len(order) - 1)

    left = box.indices[order[:cut]]
    right = box.indices[order[cut:]]
    return (
        _Box(indices=left, error=_box_error(colors[left], weights[left])),
        _Box(indices=right, error=_box_error(colors[right], weights[right])),
    )


def split_boxes(colors: np.ndarray, weights: np.ndarray, max_colors: int) -> np.ndarray:
    """
    Partition distinct colors into at most ``max_colors`` boxes.

    Args:
        colors: (N, 3) float RGB of distinct colors
        weights: (N,) pixel counts
        max_colors: Maximum number of boxes

    Returns:
        (K, 3) array of population-weighted box centroids, K <= max_colors
    """
    all_indices = np.arange(len(colors))
    boxes = [_Box(indices=all_indices, error=_box_error(colors, weights))]

    while len(boxes) < max_colors:
        candidates = [i for i, box in enumerate(boxes) if len(box.indices) > 1]
        if not candidates:
            break
        target = max(candidates, key=lambda i: boxes[i].error)
        left, right = _split_box(boxes[target], colors, weights)
        boxes[target] = left
        boxes.append(right)

    centroids = []
    for box in boxes:
        box_weights = weights[box.indices]
        centroids.append((colors[box.indices] * box_weights[:, None]).sum(axis=0) / box_weights.sum())
    return np.array(centroids)


def refine_centroids(colors: np.ndarray, weights: np.ndarray, initial: np.ndarray,
                     max_iterations: int) -> Tuple[np.ndarray, np.ndarray, RefinementState]:
    """
    Weighted k-means refinement seeded with ``initial`` centroids.

    Args:
        colors: (N, 3) float RGB of distinct colors
        weights: (N,) pixel counts
        initial: (K, 3) seed centroids
        max_iterations: Hard cap on assignment/update rounds

    Returns:
        Tuple of (refined centroids, labels per distinct color, final state)
    """
    state = RefinementState.ASSIGNING
    kmeans = KMeans(
        n_clusters=len(initial),
        init=initial * _CHANNEL_SCALE,
        n_init=1,
        max_iter=max_iterations,
        algorithm="lloyd",
        random_state=42,
    )
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        labels = kmeans.fit_predict(colors * _CHANNEL_SCALE, sample_weight=weights)

    if kmeans.n_iter_ < max_iterations:
        state = RefinementState.CONVERGED
    else:
        state = RefinementState.ITERATION_CAP_REACHED

    centroids = kmeans.cluster_centers_ / _CHANNEL_SCALE
    return centroids, labels, state


def _rank(argb: np.ndarray, populations: np.ndarray) -> List[QuantizedEntry]:
    """Order by population descending, then ARGB ascending."""
    order = np.lexsort((argb, -populations))
    return [
        QuantizedEntry(argb=int(argb[i]), population=int(populations[i]))
        for i in order
        if populations[i] > 0
    ]


def quantize(pixels: np.ndarray, max_colors: int = DEFAULT_POOL_SIZE,
             max_iterations: int = None) -> List[QuantizedEntry]:
    """
    Quantize packed pixels into a ranked set of representative colors.

    Args:
        pixels: Packed opaque ARGB samples, one per pixel
        max_colors: Pool size; at most this many entries are returned
        max_iterations: Refinement iteration cap (default from config)

    Returns:
        QuantizedEntry list ranked by population descending

    Raises:
        EmptyImageError: If ``pixels`` holds no samples
        ValueError: If ``max_colors`` is less than 1
    """
    if max_colors < 1:
        raise ValueError("max_colors must be at least 1")
    if max_iterations is None:
        max_iterations = config.QUANTIZER_MAX_ITERATIONS

    packed = np.asarray(pixels, dtype=np.uint32).ravel()
    if packed.size == 0:
        raise EmptyImageError("Image contains no pixels.")

    distinct, counts = count_colors(packed)
    logger.debug(f"Quantizing {packed.size} pixels with {len(distinct)} distinct colors into {max_colors}")

    if len(distinct) <= max_colors:
        return _rank(distinct.astype(np.int64), counts.astype(np.int64))

    start_time = time.time()
    colors = unpack_argb_array(distinct).astype(np.float64)
    weights = counts.astype(np.float64)

    seeds = split_boxes(colors, weights, max_colors)
    centroids, labels, state = refine_centroids(colors, weights, seeds, max_iterations)

    populations = np.bincount(labels, weights=counts, minlength=len(centroids)).astype(np.int64)
    rgb_u8 = np.clip(np.floor(centroids + 0.5), 0, 255).astype(np.uint8)
    argb = pack_rgb_array(rgb_u8).astype(np.int64)

    # Centroids that round to the same 8-bit color are merged.
    merged_argb, inverse = np.unique(argb, return_inverse=True)
    merged_populations = np.bincount(inverse.ravel(), weights=populations).astype(np.int64)

    duration_ms = (time.time() - start_time) * 1000
    logger.debug(
        f"Quantization finished: {len(seeds)} boxes, refinement {state.value}, "
        f"{len(merged_argb)} colors in {duration_ms:.1f}ms"
    )
    return _rank(merged_argb, merged_populations)
