"""
Palette Generation Routes
Implements the /generate_palette endpoint.
"""
import json
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Request
from starlette.datastructures import UploadFile

from app.errors import ValidationError
from app.schemas import ErrorResponse, PaletteResponse
from app.services.palette_api import handle_generate

router = APIRouter(tags=["Palette"])

UPLOAD_FIELD = "image"


async def read_palette_request(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """
    Read palette fields from a JSON, url-encoded or multipart body.

    Returns:
        Tuple of (fields, uploaded file or None)

    Raises:
        ValidationError: If the body cannot be parsed
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Invalid request body.")
        if not isinstance(payload, dict):
            raise ValidationError("Invalid request body.")
        return payload, None

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        upload = form.get(UPLOAD_FIELD)
        if not isinstance(upload, UploadFile) or not upload.filename:
            upload = None
        fields = {key: value for key, value in form.items() if isinstance(value, str)}
        return fields, upload

    # No recognised body; fall back to query parameters
    return dict(request.query_params), None


@router.post(
    "/generate_palette",
    response_model=PaletteResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Generate Color Palette",
    description="Extract a palette of num_colors perceptually distinct colors from an image"
)
async def generate_palette(request: Request) -> PaletteResponse:
    """
    Generate a color palette from an image.

    - **image_url**: http(s) URL of the image (ignored when a file is uploaded)
    - **image**: Uploaded image file (multipart only)
    - **num_colors**: Palette size, 1-100 (default 16)

    Returns exactly num_colors colors with hex, RGB, HCT and population.
    """
    fields, upload = await read_palette_request(request)
    return await handle_generate(
        image_url=fields.get("image_url"),
        upload=upload,
        num_colors=fields.get("num_colors"),
        request_id=request.state.request_id
    )
