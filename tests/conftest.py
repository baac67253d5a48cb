"""
Shared fixtures for palette extraction tests.
"""
import numpy as np
import pytest
from PIL import Image

from raster_image import RasterImage


def _to_rgba(color):
    return tuple(color) if len(color) == 4 else tuple(color) + (255,)


@pytest.fixture
def make_raster():
    """Build a RasterImage from rows of RGB or RGBA tuples (rows are y, columns are x)."""
    def _make(rows):
        arr = np.array([[_to_rgba(c) for c in row] for row in rows], dtype=np.uint8)
        return RasterImage(arr)
    return _make


@pytest.fixture
def solid_png(tmp_path):
    """Write a solid-color PNG and return its path."""
    def _write(color=(200, 100, 50), size=(4, 4), name="solid.png"):
        path = tmp_path / name
        Image.new('RGB', size, color).save(path)
        return path
    return _write
