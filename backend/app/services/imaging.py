"""
Color Palette API Imaging Utilities
Handles image fetching, format sniffing, decoding, resizing and pixel packing.
"""
import io

import cv2
import numpy as np
import requests
from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from app.config import config
from app.errors import DecodeError, FetchError, ValidationError
from app.services.colors.utils import pack_rgb_array

# Lets Image.open read HEIC/HEIF
register_heif_opener()


def detect_image_format(file_bytes: bytes) -> str:
    """
    Identify an image format from its magic bytes.

    Args:
        file_bytes: Raw file bytes

    Returns:
        One of "jpeg", "png", "webp", "gif", "bmp", "tiff", "heif" or "unknown"
    """
    if file_bytes.startswith(b'\xff\xd8\xff'):
        return "jpeg"
    elif file_bytes.startswith(b'\x89PNG\r\n\x1a\n'):
        return "png"
    elif file_bytes[:4] == b'RIFF' and file_bytes[8:12] == b'WEBP':
        return "webp"
    elif file_bytes[:6] in (b'GIF87a', b'GIF89a'):
        return "gif"
    elif file_bytes.startswith(b'BM'):
        return "bmp"
    elif file_bytes[:4] in (b'II*\x00', b'MM\x00*'):
        return "tiff"
    elif file_bytes[4:8] == b'ftyp' and file_bytes[8:12] in (
        b'heic', b'heix', b'hevc', b'hevx', b'heim', b'heis', b'mif1', b'msf1'
    ):
        return "heif"
    return "unknown"


def validate_image_size(file_bytes: bytes) -> None:
    """
    Reject uploads above the configured size limit.

    Raises:
        ValidationError: If the payload exceeds MAX_FILE_MB
    """
    if len(file_bytes) > config.MAX_FILE_MB * 1024 * 1024:
        raise ValidationError(f"File too large. Maximum size: {config.MAX_FILE_MB}MB")


def fetch_image(image_url: str, timeout: float = None) -> bytes:
    """
    Download an image over HTTP(S).

    Args:
        image_url: Absolute http(s) URL
        timeout: Request timeout in seconds (default from config)

    Returns:
        Raw response body

    Raises:
        FetchError: On network failure, non-200 status or oversized body
    """
    if timeout is None:
        timeout = config.FETCH_TIMEOUT

    try:
        response = requests.get(image_url, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch image: {str(e)}")

    if response.status_code != 200:
        raise FetchError(f"Failed to fetch image: {response.status_code} {response.reason}")

    content = response.content
    if len(content) > config.MAX_FILE_MB * 1024 * 1024:
        raise FetchError(f"Failed to fetch image: larger than {config.MAX_FILE_MB}MB")
    return content


def decode_image(file_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes to an RGB uint8 array.

    WebP, GIF and HEIF are transcoded to a plain raster here; animated
    and multi-image files contribute their first frame.

    Args:
        file_bytes: Raw file bytes

    Returns:
        (H, W, 3) uint8 RGB array

    Raises:
        DecodeError: For unsupported or corrupt images
    """
    image_format = detect_image_format(file_bytes)
    if image_format not in config.SUPPORTED_FORMATS:
        raise DecodeError(f"Unsupported image format: {image_format}")

    try:
        pil_image = Image.open(io.BytesIO(file_bytes))
        pil_image.seek(0)

        # Convert to RGB if necessary; alpha is discarded
        if pil_image.mode != 'RGB':
            pil_image = pil_image.convert('RGB')

        rgb_array = np.array(pil_image)
    except (UnidentifiedImageError, Image.DecompressionBombError,
            OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to decode {image_format} image: {str(e)}")

    height, width = rgb_array.shape[:2]
    if width == 0 or height == 0:
        raise DecodeError(f"Failed to decode {image_format} image: empty raster")
    return rgb_array


def resize_to_width(rgb: np.ndarray, width: int = None) -> np.ndarray:
    """
    Resize an image to a fixed width, keeping its aspect ratio.

    Args:
        rgb: Input image array
        width: Target width (default from config)

    Returns:
        Resized image array
    """
    if width is None:
        width = config.RESIZE_WIDTH

    height, current_width = rgb.shape[:2]
    if current_width == width:
        return rgb

    new_height = max(1, int(round(height * width / current_width)))

    # INTER_AREA for downscaling; nearest neighbour when enlarging so no blended colors appear
    interpolation = cv2.INTER_AREA if width < current_width else cv2.INTER_NEAREST
    return cv2.resize(rgb, (width, new_height), interpolation=interpolation)


def pack_pixels(rgb: np.ndarray) -> np.ndarray:
    """
    Flatten an RGB(A) image into packed opaque ARGB samples in row-major order.

    Args:
        rgb: (H, W, 3) or (H, W, 4) uint8 array

    Returns:
        (H*W,) uint32 array
    """
    return pack_rgb_array(rgb[..., :3].reshape(-1, 3))


def load_pixels(file_bytes: bytes, width: int = None) -> np.ndarray:
    """
    Decode, resize and pack an image into the pipeline's pixel buffer.

    Raises:
        DecodeError: For unsupported or corrupt images
    """
    rgb = decode_image(file_bytes)
    rgb = resize_to_width(rgb, width)
    return pack_pixels(rgb)
