"""
Unit tests for the color quantizer.

Tests:
- distinct-color passthrough when the image fits in the pool
- box splitting and bounded k-means refinement
- ranking, determinism and failure modes
"""

import numpy as np
import pytest

from app.errors import EmptyImageError
from app.services.colors.quantizer import (
    QuantizedEntry, RefinementState, count_colors, quantize, refine_centroids, split_boxes
)
from app.services.colors.utils import argb_from_rgb, rgb_from_argb, unpack_argb_array

RED = argb_from_rgb(255, 0, 0)
BLUE = argb_from_rgb(0, 0, 255)


class TestSmallImages:
    """Images with no more distinct colors than the pool"""

    def test_monochrome_image_single_entry(self):
        """A single-color image yields one entry covering every pixel"""
        pixels = np.full(1000, argb_from_rgb(18, 52, 86), dtype=np.uint32)

        result = quantize(pixels)

        assert result == [QuantizedEntry(argb=argb_from_rgb(18, 52, 86), population=1000)]

    def test_red_red_red_blue(self):
        """Populations are exact and ranked descending"""
        pixels = np.array([RED, RED, RED, BLUE], dtype=np.uint32)

        result = quantize(pixels)

        assert result == [
            QuantizedEntry(argb=RED, population=3),
            QuantizedEntry(argb=BLUE, population=1),
        ]

    def test_returns_every_distinct_color(self):
        """Fewer distinct colors than the pool come back unchanged"""
        colors = [argb_from_rgb(i * 20, 255 - i * 20, 7) for i in range(10)]
        pixels = np.array([c for i, c in enumerate(colors) for _ in range(i + 1)], dtype=np.uint32)

        result = quantize(pixels, max_colors=256)

        assert len(result) == 10
        assert {entry.argb for entry in result} == set(colors)
        assert sum(entry.population for entry in result) == len(pixels)
        assert result[0].argb == colors[-1]

    def test_equal_populations_break_ties_by_color(self):
        """Ties are ordered by packed value so output is stable"""
        pixels = np.array([BLUE, RED, BLUE, RED], dtype=np.uint32)

        result = quantize(pixels)

        assert [entry.argb for entry in result] == sorted([RED, BLUE])

    def test_alpha_is_opaque(self):
        """Returned colors keep the opaque alpha byte"""
        result = quantize(np.array([RED], dtype=np.uint32))
        assert result[0].argb >> 24 == 0xFF


class TestLargeImages:
    """Images that need box splitting and refinement"""

    def test_pool_size_respected(self, noisy_pixels):
        """Never more entries than the pool size"""
        result = quantize(noisy_pixels, max_colors=16)

        assert 1 <= len(result) <= 16
        assert all(entry.population >= 1 for entry in result)
        assert sum(entry.population for entry in result) <= len(noisy_pixels)

    def test_ranked_by_population(self, noisy_pixels):
        """Entries are sorted by population descending"""
        result = quantize(noisy_pixels, max_colors=32)
        populations = [entry.population for entry in result]
        assert populations == sorted(populations, reverse=True)

    def test_deterministic(self, noisy_pixels):
        """Same input produces identical output"""
        assert quantize(noisy_pixels, max_colors=24) == quantize(noisy_pixels.copy(), max_colors=24)

    def test_dominant_color_ranked_first(self, noisy_pixels):
        """The color covering most pixels is rank 0"""
        dominant = argb_from_rgb(200, 30, 30)
        pixels = np.concatenate([np.full(20000, dominant, dtype=np.uint32), noisy_pixels])

        result = quantize(pixels, max_colors=8)

        assert result[0].population >= 20000
        r, g, b = rgb_from_argb(result[0].argb)
        assert abs(r - 200) <= 20
        assert abs(g - 30) <= 20
        assert abs(b - 30) <= 20


class TestStages:
    """Box splitting and refinement in isolation"""

    def test_split_boxes_separates_clusters(self):
        """Two distant groups end up in different boxes"""
        colors = np.array([[0, 0, 0], [0, 0, 2], [250, 250, 250], [252, 250, 250]], dtype=np.float64)
        weights = np.array([1.0, 1.0, 1.0, 1.0])

        centroids = split_boxes(colors, weights, max_colors=2)

        assert centroids.shape == (2, 3)
        sorted_centroids = centroids[np.argsort(centroids[:, 0])]
        np.testing.assert_allclose(sorted_centroids[0], [0, 0, 1])
        np.testing.assert_allclose(sorted_centroids[1], [251, 250, 250])

    def test_split_boxes_stops_at_distinct_colors(self):
        """Cannot produce more boxes than distinct colors"""
        colors = np.array([[10, 10, 10], [200, 0, 0], [0, 200, 0]], dtype=np.float64)
        weights = np.array([5.0, 1.0, 1.0])

        centroids = split_boxes(colors, weights, max_colors=10)

        assert len(centroids) == 3

    def test_refinement_converges(self):
        """Well separated seeds converge before the cap"""
        colors = np.array([[0, 0, 0], [0, 0, 2], [250, 250, 250], [252, 250, 250]], dtype=np.float64)
        weights = np.array([3.0, 1.0, 1.0, 1.0])
        seeds = np.array([[0, 0, 1], [251, 250, 250]], dtype=np.float64)

        centroids, labels, state = refine_centroids(colors, weights, seeds, max_iterations=10)

        assert state == RefinementState.CONVERGED
        assert labels[0] == labels[1]
        assert labels[2] == labels[3]
        np.testing.assert_allclose(centroids[labels[0]], [0, 0, 0.5], atol=1e-6)

    def test_refinement_iteration_cap(self, noisy_pixels):
        """A cap of one iteration always reports the cap state"""
        distinct, counts = count_colors(noisy_pixels)
        rgb = unpack_argb_array(distinct).astype(np.float64)
        seeds = split_boxes(rgb, counts.astype(np.float64), max_colors=12)

        _, _, state = refine_centroids(rgb, counts.astype(np.float64), seeds, max_iterations=1)

        assert state == RefinementState.ITERATION_CAP_REACHED


class TestFailures:
    """Error handling"""

    def test_empty_input(self):
        """Empty pixel buffers are rejected"""
        with pytest.raises(EmptyImageError):
            quantize(np.array([], dtype=np.uint32))

    def test_invalid_pool_size(self):
        """Pool size must be positive"""
        with pytest.raises(ValueError):
            quantize(np.array([RED], dtype=np.uint32), max_colors=0)
