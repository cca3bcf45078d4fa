"""sRGB color conversion helpers."""

from typing import Tuple

ColorFactor = Tuple[float, float, float, float]


def srgb_to_linear(c: float) -> float:
    """Standard sRGB transfer function, inverted, for one channel in [0, 1]."""
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def hex_to_linear_factor(hex_color: int, alpha: float = 1.0) -> ColorFactor:
    """Convert a packed 0xRRGGBB color to a linear RGBA factor."""
    r = ((hex_color >> 16) & 255) / 255
    g = ((hex_color >> 8) & 255) / 255
    b = (hex_color & 255) / 255
    return (srgb_to_linear(r), srgb_to_linear(g), srgb_to_linear(b), alpha)
