"""
Color Palette API Configuration
Manages environment variables and defaults for the palette service.
"""
import os
import re
from typing import Literal


class Config:
    """Configuration class for the palette service."""

    # Server
    PORT: int = int(os.environ.get("PORT", "3000"))
    HOST: str = os.environ.get("PALETTE_HOST", "0.0.0.0")
    VERSION: str = "1.0.0"
    SERVICE_NAME: str = "color-palette-api"

    # Logging
    LOG_LEVEL: str = os.environ.get("PALETTE_LOG_LEVEL", "INFO")
    LOG_JSON: bool = os.environ.get("PALETTE_LOG_JSON", "false").lower() in ("1", "true", "yes")

    # Palette request limits
    DEFAULT_NUM_COLORS: int = int(os.environ.get("PALETTE_DEFAULT_NUM_COLORS", "16"))
    MIN_COLORS: int = int(os.environ.get("PALETTE_MIN_COLORS", "1"))
    MAX_COLORS: int = int(os.environ.get("PALETTE_MAX_COLORS", "100"))

    # Extraction pipeline
    POOL_SIZE: int = int(os.environ.get("PALETTE_POOL_SIZE", "256"))
    HUE_THRESHOLD: float = float(os.environ.get("PALETTE_HUE_THRESHOLD", "10.0"))
    HUE_DISTANCE: Literal["absolute", "circular"] = os.environ.get("PALETTE_HUE_DISTANCE", "absolute")
    QUANTIZER_MAX_ITERATIONS: int = int(os.environ.get("PALETTE_QUANTIZER_MAX_ITERATIONS", "10"))
    RESIZE_WIDTH: int = int(os.environ.get("PALETTE_RESIZE_WIDTH", "500"))

    # Image sources
    FETCH_TIMEOUT: float = float(os.environ.get("PALETTE_FETCH_TIMEOUT", "10"))
    MAX_FILE_MB: int = int(os.environ.get("PALETTE_MAX_FILE_MB", "10"))

    # CORS and headers
    ALLOWED_ORIGINS: str = os.environ.get("PALETTE_ALLOWED_ORIGINS", "*")
    CONTENT_SECURITY_POLICY: str = os.environ.get(
        "PALETTE_CONTENT_SECURITY_POLICY",
        "default-src 'self'; img-src 'self' https:; script-src 'self'; style-src 'self' 'unsafe-inline';"
    )

    # Supported image formats (as reported by format sniffing)
    SUPPORTED_FORMATS = ["jpeg", "png", "webp", "gif", "bmp", "tiff", "heif"]
    IMAGE_URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$")

    @classmethod
    def validate_num_colors(cls, num_colors: int) -> bool:
        """Validate requested palette size."""
        return cls.MIN_COLORS <= num_colors <= cls.MAX_COLORS

    @classmethod
    def validate_image_url(cls, image_url: str) -> bool:
        """Validate image URL against the basic http(s) pattern."""
        return bool(image_url) and cls.IMAGE_URL_RE.fullmatch(image_url) is not None

    @classmethod
    def allowed_origins(cls) -> list:
        """Parse the comma-separated CORS origin list."""
        return [origin.strip() for origin in cls.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Global config instance
config = Config()
