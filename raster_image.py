"""
Raster image sources for palette extraction.

The extractor only needs width, height and per-pixel RGBA. This module
wraps a (height, width, 4) uint8 array behind that interface and builds one
from Pillow images, numpy arrays or image files.
"""

from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image


# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side

# Sources are previewed at this resolution before sampling
GRAB_SIZE = 32


class RasterImage:
    """An immutable RGBA raster."""

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected a (height, width, 4) array, got shape {pixels.shape}")
        pixels = np.array(pixels, dtype=np.uint8, copy=True)
        pixels.setflags(write=False)
        self._pixels = pixels

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """
        Build from a grayscale (H, W), RGB (H, W, 3) or RGBA (H, W, 4) array.

        Missing alpha is filled in as fully opaque.
        """
        array = np.asarray(array)
        if array.ndim == 2:
            array = np.repeat(array[:, :, np.newaxis], 3, axis=2)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported array shape {array.shape}")
        if array.dtype != np.uint8:
            array = np.clip(array, 0, 255).astype(np.uint8)
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=2)
        return cls(array)

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        return cls(np.array(image.convert('RGBA')))

    @property
    def pixels(self) -> np.ndarray:
        """Read-only (height, width, 4) uint8 view."""
        return self._pixels

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def is_null(self) -> bool:
        return self.width == 0 or self.height == 0

    def pixel(self, x: int, y: int) -> tuple:
        """RGBA tuple at column x, row y."""
        return tuple(int(c) for c in self._pixels[y, x])

    def __repr__(self):
        return f"RasterImage({self.width}x{self.height})"


def load_image(image_path, grab_size: Optional[int] = None) -> RasterImage:
    """
    Load an image file as a RasterImage.

    Args:
        image_path: Path to the image file
        grab_size: If set, downscale (keeping aspect) to fit a square of this size

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    img = img.convert('RGBA')
    if grab_size is not None:
        img.thumbnail((grab_size, grab_size), Image.LANCZOS)

    return RasterImage.from_pil(img)


def as_raster(source, grab_size: Optional[int] = GRAB_SIZE) -> Optional[RasterImage]:
    """
    Coerce a palette source into a RasterImage.

    Accepts None, RasterImage, PIL images, numpy arrays and file paths.
    Only file paths are downscaled to grab_size; in-memory images are
    sampled as given.
    """
    if source is None or isinstance(source, RasterImage):
        return source
    if isinstance(source, Image.Image):
        return RasterImage.from_pil(source)
    if isinstance(source, np.ndarray):
        return RasterImage.from_array(source)
    if isinstance(source, (str, Path)):
        return load_image(source, grab_size=grab_size)
    raise TypeError(f"Unsupported palette source: {type(source).__name__}")
