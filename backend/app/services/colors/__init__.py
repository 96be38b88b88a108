"""
Color Palette Colors Module

Provides color quantization, HCT perceptual projection, hue-based
diversification and fixed-size palette assembly for arbitrary images.
"""

__version__ = "1.0.0"
