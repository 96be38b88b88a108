"""
Test configuration and fixtures for the color palette tests.
"""
import io

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Import the main app
from main import app
from app.services.colors.utils import pack_rgb_array


@pytest.fixture
def test_client():
    """Create test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset metrics before each test."""
    from app.utils.metrics import reset_metrics
    reset_metrics()


def encode_image(rgb: np.ndarray, fmt: str = "PNG") -> bytes:
    """Encode an RGB(A) uint8 array to image bytes."""
    buffer = io.BytesIO()
    Image.fromarray(rgb).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def two_color_rgb():
    """20x10 image: left 3/4 red, right 1/4 blue"""
    img = np.zeros((10, 20, 3), dtype=np.uint8)
    img[:, :15] = (255, 0, 0)
    img[:, 15:] = (0, 0, 255)
    return img


@pytest.fixture
def two_color_png(two_color_rgb):
    """PNG bytes of the two-color image"""
    return encode_image(two_color_rgb)


@pytest.fixture
def noisy_pixels():
    """Deterministic packed pixels with thousands of distinct colors"""
    rng = np.random.default_rng(7)
    rgb = rng.integers(0, 256, size=(6000, 3), dtype=np.uint8)
    return pack_rgb_array(rgb)
