"""
Color Palette API Schemas
Pydantic models for palette request/response validation.
"""
from typing import Dict, List
from pydantic import BaseModel, Field


class PaletteEntry(BaseModel):
    """Single palette color with perceptual attributes and population."""
    hex: str = Field(
        ...,
        pattern=r"^#[0-9a-f]{6}$",
        description="Hex color code in format #rrggbb"
    )
    red: int = Field(..., ge=0, le=255, description="Red channel (0-255)")
    green: int = Field(..., ge=0, le=255, description="Green channel (0-255)")
    blue: int = Field(..., ge=0, le=255, description="Blue channel (0-255)")
    hue: float = Field(..., ge=0.0, lt=360.0, description="HCT hue in degrees")
    chroma: float = Field(..., ge=0.0, description="HCT chroma")
    tone: float = Field(..., ge=0.0, le=100.0, description="HCT tone (CIE L*)")
    population: int = Field(
        ...,
        ge=1,
        description="Number of source pixels represented by this color"
    )


class PaletteResponse(BaseModel):
    """Palette generation response."""
    palette: List[PaletteEntry] = Field(
        ...,
        description="Exactly num_colors entries, most dominant first"
    )


class ErrorResponse(BaseModel):
    """Error response."""
    error: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response."""
    ok: bool = Field(True, description="Service health status")
    version: str = Field(..., description="Service version")
    service: str = Field("color-palette-api", description="Service name")


class MetricsResponse(BaseModel):
    """In-process metrics summary."""
    uptime_seconds: float
    counters: Dict[str, int]
    timing_stats: Dict[str, Dict[str, float]]
    palette_size_stats: Dict[str, int]
