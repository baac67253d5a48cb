"""
Palette extraction settings and logging setup.

The clustering threshold is the only tunable; everything else the
extractor does is fixed policy (see the constants in extract_colors.py).
"""

import os
import sys
from dataclasses import dataclass
from numbers import Integral
from typing import Optional

from loguru import logger


DEFAULT_MINIMUM_SQUARE_DISTANCE = 32000

MIN_SQUARE_DISTANCE_ENV = "PALETTE_MIN_SQUARE_DISTANCE"
LOG_LEVEL_ENV = "PALETTE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class PaletteConfig:
    """Immutable extractor settings."""
    # Squared perceptual distance under which two colors share a cluster.
    # Used for clustering, merging and (x1.5) contrast matching.
    minimum_square_distance: int = DEFAULT_MINIMUM_SQUARE_DISTANCE

    def __post_init__(self):
        if isinstance(self.minimum_square_distance, bool) or not isinstance(self.minimum_square_distance, Integral):
            raise ValueError(
                f"minimum_square_distance must be an integer, got {self.minimum_square_distance!r}"
            )
        if self.minimum_square_distance <= 0:
            raise ValueError(
                f"minimum_square_distance must be positive, got {self.minimum_square_distance}"
            )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "PaletteConfig":
        """Build a config from PALETTE_MIN_SQUARE_DISTANCE, falling back to defaults."""
        environ = os.environ if environ is None else environ
        raw = environ.get(MIN_SQUARE_DISTANCE_ENV)
        if raw is None or raw.strip() == "":
            return cls()
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"{MIN_SQUARE_DISTANCE_ENV} must be an integer, got {raw!r}")
        return cls(minimum_square_distance=value)


def configure_logging(level: Optional[str] = None) -> None:
    """Replace loguru's default sink with a stderr sink at the given level."""
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)
    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}",
        level=level.upper(),
    )
