"""
Integer color helpers shared by the palette extractor and the renderers.

All colors are 8-bit (r, g, b) tuples. HSL and HSV components are 8-bit
integers as well; hue is in whole degrees, or -1 for achromatic colors.
"""

import math


def _round(value: float) -> int:
    """Round half up."""
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int = 0, high: int = 255) -> int:
    return max(low, min(high, value))


# =============================================================================
# Luma / inversion
# =============================================================================

def gray(rgb: tuple) -> int:
    """Integer luma (11/16/5 weighting), 0-255."""
    r, g, b = rgb
    return (r * 11 + g * 16 + b * 5) // 32


def invert(rgb: tuple) -> tuple:
    """Channel-wise 255 complement."""
    return tuple(255 - c for c in rgb)


# =============================================================================
# HSL
# =============================================================================

def hsl_lightness(rgb: tuple) -> int:
    """HSL lightness, 0-255."""
    return (max(rgb) + min(rgb) + 1) // 2


def rgb_to_hsl(rgb: tuple) -> tuple:
    """
    Convert an RGB tuple to integer HSL.

    Returns:
        (hue, saturation, lightness) with hue in degrees (-1 when the color
        has no chroma) and saturation/lightness in 0-255.
    """
    cmax = max(rgb)
    cmin = min(rgb)
    delta = cmax - cmin
    lightness = (cmax + cmin + 1) // 2

    if delta == 0:
        return -1, 0, lightness

    r, g, b = rgb
    total = (cmax + cmin) / 255.0
    if total < 1.0:
        saturation = (delta / 255.0) / total
    else:
        saturation = (delta / 255.0) / (2.0 - total)

    if r == cmax:
        hue = (g - b) / delta
    elif g == cmax:
        hue = 2 + (b - r) / delta
    else:
        hue = 4 + (r - g) / delta
    hue *= 60
    if hue < 0:
        hue += 360

    # Hue is kept at 1/100 degree precision, then truncated to whole degrees
    hue = _round(hue * 100) // 100
    return hue, _clamp(_round(saturation * 255)), lightness


def hsl_to_rgb(hue: int, saturation: int, lightness: int) -> tuple:
    """Convert integer HSL (see rgb_to_hsl) back to an RGB tuple."""
    if hue < 0 or saturation == 0:
        return (lightness, lightness, lightness)

    l = lightness / 255.0
    s = saturation / 255.0
    chroma = (1 - abs(2 * l - 1)) * s
    h = (hue % 360) / 60.0
    x = chroma * (1 - abs(h % 2 - 1))
    m = l - chroma / 2

    if h < 1:
        r, g, b = chroma, x, 0.0
    elif h < 2:
        r, g, b = x, chroma, 0.0
    elif h < 3:
        r, g, b = 0.0, chroma, x
    elif h < 4:
        r, g, b = 0.0, x, chroma
    elif h < 5:
        r, g, b = x, 0.0, chroma
    else:
        r, g, b = chroma, 0.0, x

    return tuple(_clamp(_round((c + m) * 255)) for c in (r, g, b))


def with_lightness(rgb: tuple, lightness: int) -> tuple:
    """Same hue and saturation, new HSL lightness (clamped to 0-255)."""
    hue, saturation, _ = rgb_to_hsl(rgb)
    return hsl_to_rgb(hue, saturation, _clamp(lightness))


# =============================================================================
# HSV
# =============================================================================

def hsv_value(rgb: tuple) -> int:
    return max(rgb)


def hsv_saturation(rgb: tuple) -> int:
    """HSV saturation, 0-255."""
    cmax = max(rgb)
    if cmax == 0:
        return 0
    return _round((cmax - min(rgb)) * 255 / cmax)


# =============================================================================
# Hex
# =============================================================================

def rgb_to_hex(rgb: tuple) -> str:
    """Convert an RGB tuple to a #rrggbb string."""
    r, g, b = (int(c) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"
