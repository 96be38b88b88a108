"""
Palette Generation API Orchestrator

Coordinates one palette request: input validation, image retrieval (remote
URL or upload), decoding, and the color extraction pipeline. CPU-bound work
runs on the threadpool so the event loop keeps accepting requests.
"""

import time
from typing import Any, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from app.config import config
from app.errors import PaletteError, ValidationError
from app.schemas import PaletteResponse
from app.services.colors.palette import generate_palette
from app.services.imaging import fetch_image, load_pixels, validate_image_size
from app.utils.ids import generate_request_id
from app.utils.logging import get_logger
from app.utils.metrics import get_metrics

INVALID_URL_MESSAGE = "Invalid image URL."
INVALID_NUM_COLORS_MESSAGE = (
    f"Invalid number of colors. Must be between {config.MIN_COLORS} and {config.MAX_COLORS}."
)
MISSING_IMAGE_MESSAGE = "No image provided. Supply image_url or an image file."


def parse_num_colors(value: Any) -> int:
    """
    Parse and range-check the requested palette size.

    Missing or blank values fall back to the configured default.

    Raises:
        ValidationError: If the value is not an integer in range
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return config.DEFAULT_NUM_COLORS

    if isinstance(value, bool):
        raise ValidationError(INVALID_NUM_COLORS_MESSAGE)
    if isinstance(value, int):
        num_colors = value
    elif isinstance(value, str):
        try:
            num_colors = int(value.strip())
        except ValueError:
            raise ValidationError(INVALID_NUM_COLORS_MESSAGE)
    else:
        raise ValidationError(INVALID_NUM_COLORS_MESSAGE)

    if not config.validate_num_colors(num_colors):
        raise ValidationError(INVALID_NUM_COLORS_MESSAGE)
    return num_colors


def validate_image_source(image_url: Optional[str], upload: Optional[UploadFile]) -> str:
    """
    Decide which image source a request uses.

    An uploaded file takes precedence over ``image_url``.

    Returns:
        "upload" or "url"

    Raises:
        ValidationError: If no source is given or the URL is malformed
    """
    if upload is not None:
        return "upload"
    if image_url is None or (isinstance(image_url, str) and not image_url.strip()):
        raise ValidationError(MISSING_IMAGE_MESSAGE)
    if not isinstance(image_url, str) or not config.validate_image_url(image_url):
        raise ValidationError(INVALID_URL_MESSAGE)
    return "url"


async def handle_generate(
    image_url: Optional[str] = None,
    upload: Optional[UploadFile] = None,
    num_colors: Any = None,
    request_id: Optional[str] = None
) -> PaletteResponse:
    """
    Main orchestrator for palette generation.

    Args:
        image_url: Remote image location
        upload: Uploaded image file
        num_colors: Requested palette size, raw from the request body
        request_id: Id bound to every log line of this request

    Returns:
        PaletteResponse with exactly ``num_colors`` entries

    Raises:
        ValidationError: For invalid inputs
        FetchError, DecodeError, EmptyImageError, InsufficientPaletteError:
            For downstream failures
    """
    request_id = request_id or generate_request_id("pal")
    logger = get_logger(request_id)
    metrics = get_metrics()
    start_time = time.time()

    metrics.request_started()
    logger.info("Starting palette generation")

    try:
        source = validate_image_source(image_url, upload)
        num_colors = parse_num_colors(num_colors)
        metrics.source_used(source)
        metrics.palette_requested(num_colors)

        # Step 1: Retrieve image bytes
        fetch_start = time.time()
        if source == "upload":
            image_bytes = await upload.read()
            validate_image_size(image_bytes)
        else:
            image_bytes = await run_in_threadpool(fetch_image, image_url)
        fetch_time = (time.time() - fetch_start) * 1000

        # Step 2: Decode, resize and pack pixels
        decode_start = time.time()
        pixels = await run_in_threadpool(load_pixels, image_bytes)
        decode_time = (time.time() - decode_start) * 1000

        # Step 3: Extraction pipeline
        pipeline_start = time.time()
        palette = await run_in_threadpool(generate_palette, pixels, num_colors)
        pipeline_time = (time.time() - pipeline_start) * 1000

        total_time = (time.time() - start_time) * 1000
        logger.info("Palette generation completed successfully", extra={
            "source": source,
            "num_colors": num_colors,
            "pixel_count": int(pixels.size),
            "ms_fetch": fetch_time,
            "ms_decode": decode_time,
            "ms_pipeline": pipeline_time,
            "ms_total": total_time,
            "result": "ok"
        })

        metrics.observe("fetch", fetch_time)
        metrics.observe("decode", decode_time)
        metrics.observe("pipeline", pipeline_time)
        metrics.observe("palette_request", total_time)

        return PaletteResponse(palette=palette)

    except PaletteError as e:
        error_time = (time.time() - start_time) * 1000
        logger.error(f"Palette generation failed: {e.message}", extra={
            "ms_total": error_time,
            "result": "error",
            "error_type": type(e).__name__
        })
        metrics.request_failed(type(e).__name__)
        raise
