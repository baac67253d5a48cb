#!/usr/bin/env python3
"""
Extract a ranked color palette from an image.

Pixels are grouped by a greedy first-fit clustering under a weighted RGB
distance, refined for a fixed number of rounds, compacted, and then used to
derive the dominant color, the most saturated color, the grayscale extremes
and a contrast color for every swatch.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from loguru import logger

from color_space import (
    gray, invert, hsl_lightness, with_lightness,
    hsv_saturation, hsv_value, rgb_to_hex,
)
from palette_config import PaletteConfig
from raster_image import RasterImage, as_raster


# =============================================================================
# Constants
# =============================================================================

REFINEMENT_ITERATIONS = 5
CONTRAST_MATCH_FACTOR = 1.5  # Nearest centroid is reused verbatim under 1.5x threshold
SMALL_PALETTE_SIZE = 3  # Below this many swatches, contrast is flat dark/light
LIGHTNESS_NUDGE = 20
LIGHTNESS_MIDPOINT = 128

GRAY_CUTOFF = 120
DARK_CONTRAST = (20, 20, 20)
LIGHT_CONTRAST = (230, 230, 230)

SATURATION_VALUE_CENTER = 158  # Value at which the saturation score peaks

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


class ExtractionCancelled(Exception):
    """Raised inside extract() when its cancellation token has been set."""


class CancellationToken:
    """Thread-safe flag telling an in-flight extraction to stop."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExtractionCancelled()


def _check(cancel: Optional[CancellationToken]) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled()


# =============================================================================
# Data model
# =============================================================================

@dataclass
class Cluster:
    """Scratch cluster owned by one extraction run."""
    centroid: tuple
    members: list = field(default_factory=list)
    ratio: float = 0.0
    seeded: bool = False  # members[0] is the synthetic centroid seed

    @property
    def sample_count(self) -> int:
        """Number of real samples assigned in the current pass."""
        return len(self.members) - 1 if self.seeded else len(self.members)


@dataclass(frozen=True)
class PaletteEntry:
    color: tuple
    ratio: float
    contrast_color: tuple

    @property
    def hex(self) -> str:
        return rgb_to_hex(self.color)


@dataclass(frozen=True)
class PaletteResult:
    """Output of one extraction run. Derived colors are None when empty."""
    palette: tuple = ()
    dominant: Optional[tuple] = None
    most_saturated: Optional[tuple] = None
    closest_to_black: Optional[tuple] = None
    closest_to_white: Optional[tuple] = None
    suggested_contrast: Optional[tuple] = None

    @classmethod
    def empty(cls) -> "PaletteResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.palette

    def to_dict(self) -> dict:
        def as_hex(rgb):
            return rgb_to_hex(rgb) if rgb is not None else None

        return {
            'palette': [
                {
                    'hex': entry.hex,
                    'ratio': entry.ratio,
                    'contrast': as_hex(entry.contrast_color),
                }
                for entry in self.palette
            ],
            'dominant': as_hex(self.dominant),
            'most_saturated': as_hex(self.most_saturated),
            'closest_to_black': as_hex(self.closest_to_black),
            'closest_to_white': as_hex(self.closest_to_white),
            'suggested_contrast': as_hex(self.suggested_contrast),
        }


# =============================================================================
# Distance
# =============================================================================

def square_distance(color1: tuple, color2: tuple) -> int:
    """
    Weighted squared RGB distance (red-mean style approximation).

    The red difference is signed: below 128 the weights are (2, 4, 3),
    otherwise (3, 4, 2).
    """
    dr = color1[0] - color2[0]
    dg = color1[1] - color2[1]
    db = color1[2] - color2[2]
    if dr < 128:
        return 2 * dr * dr + 4 * dg * dg + 3 * db * db
    return 3 * dr * dr + 4 * dg * dg + 2 * db * db


# =============================================================================
# Sampling and clustering
# =============================================================================

def collect_samples(image: RasterImage) -> list:
    """
    RGB tuples of every pixel with non-zero alpha.

    Scan order is column-major: increasing x, then increasing y.
    """
    columns = image.pixels.transpose(1, 0, 2).reshape(-1, 4)
    opaque = columns[columns[:, 3] > 0][:, :3]
    return [tuple(rgb) for rgb in opaque.tolist()]


def position_color(rgb: tuple, clusters: list, threshold: int) -> Cluster:
    """Add rgb to the first cluster within threshold, or start a new one."""
    for cluster in clusters:
        if square_distance(rgb, cluster.centroid) < threshold:
            cluster.members.append(rgb)
            return cluster

    cluster = Cluster(centroid=rgb, members=[rgb])
    clusters.append(cluster)
    return cluster


def cluster_samples(samples: list, threshold: int) -> list:
    """Initial single-pass clustering, in sample order."""
    clusters = []
    for rgb in samples:
        position_color(rgb, clusters, threshold)
    return clusters


def _mean_color(colors: list) -> tuple:
    count = len(colors)
    arr = np.array(colors, dtype=np.int64)
    r, g, b = (int(total) // count for total in arr.sum(axis=0))
    return (r, g, b)


def refine_clusters(clusters: list, samples: list, threshold: int,
                    cancel: Optional[CancellationToken] = None) -> list:
    """
    Recenter clusters and reassign every sample, REFINEMENT_ITERATIONS times.

    Each round a cluster restarts with its new centroid as its only member,
    so the centroid weighs into the next mean. Reassignment may spawn new
    clusters. Returns the clusters that still hold samples, with ratios set
    from the final assignment.
    """
    total = len(samples)

    for _ in range(REFINEMENT_ITERATIONS):
        for cluster in clusters:
            cluster.centroid = _mean_color(cluster.members)
            cluster.ratio = cluster.sample_count / total
            cluster.members = [cluster.centroid]
            cluster.seeded = True

        for rgb in samples:
            position_color(rgb, clusters, threshold)

        _check(cancel)

    survivors = [cluster for cluster in clusters if cluster.sample_count > 0]
    for cluster in survivors:
        cluster.ratio = cluster.sample_count / total
    return survivors


def sort_clusters(clusters: list) -> list:
    """Largest first; creation order breaks ties."""
    return sorted(clusters, key=lambda c: c.sample_count, reverse=True)


def merge_clusters(clusters: list, threshold: int) -> list:
    """
    Fold clusters that ended up too close into earlier (larger) ones.

    Sources are visited from last to second; each merges into the first
    earlier cluster within threshold. A destination moves as it absorbs
    sources, so sweeps repeat until one merges nothing; afterwards every
    pair of survivors is at least threshold apart.
    """
    while True:
        clusters, merged = _merge_sweep(clusters, threshold)
        if not merged:
            return clusters


def _merge_sweep(clusters: list, threshold: int) -> tuple:
    """
    One merge sweep over working copies of centroids and ratios.

    Returns (survivors, merged). Survivors are re-sorted by ratio (stable,
    so it only moves a cluster that outgrew an earlier one).
    """
    centroids = [cluster.centroid for cluster in clusters]
    ratios = [cluster.ratio for cluster in clusters]
    removed = set()

    for source in range(len(clusters) - 1, 0, -1):
        for dest in range(source):
            if square_distance(centroids[source], centroids[dest]) >= threshold:
                continue
            weight = ratios[source] / ratios[dest]
            centroids[dest] = tuple(
                max(0, min(255, int(weight * s + (1 - weight) * d)))
                for s, d in zip(centroids[source], centroids[dest])
            )
            ratios[dest] += ratios[source]
            removed.add(source)
            break

    survivors = [
        Cluster(
            centroid=centroids[i],
            members=list(cluster.members),
            ratio=ratios[i],
            seeded=cluster.seeded,
        )
        for i, cluster in enumerate(clusters)
        if i not in removed
    ]
    return sorted(survivors, key=lambda c: c.ratio, reverse=True), bool(removed)


# =============================================================================
# Derived colors
# =============================================================================

def nearest_centroid(rgb: tuple, clusters: list) -> tuple:
    """(centroid, distance) of the cluster closest to rgb; first wins ties."""
    best = None
    best_distance = None
    for cluster in clusters:
        distance = square_distance(rgb, cluster.centroid)
        if best_distance is None or distance < best_distance:
            best = cluster.centroid
            best_distance = distance
    return best, best_distance


def contrast_color(rgb: tuple, clusters: list, dominant: tuple, threshold: int) -> tuple:
    """
    Pick a color that stands out against rgb, preferring palette colors.

    Small palettes get a flat near-black or near-white chosen from the
    dominant color's luma.
    """
    if len(clusters) < SMALL_PALETTE_SIZE:
        return LIGHT_CONTRAST if gray(dominant) < GRAY_CUTOFF else DARK_CONTRAST

    inverted = invert(rgb)
    mirrored = LIGHTNESS_MIDPOINT + (LIGHTNESS_MIDPOINT - hsl_lightness(inverted))
    # Mirroring black gives 256, which is no color at all; aim for black.
    target = with_lightness(inverted, mirrored) if mirrored <= 255 else BLACK

    nearest, distance = nearest_centroid(target, clusters)
    if distance < threshold * CONTRAST_MATCH_FACTOR:
        return nearest

    lightness = hsl_lightness(nearest)
    if lightness > LIGHTNESS_MIDPOINT:
        return with_lightness(nearest, lightness + LIGHTNESS_NUDGE)
    return with_lightness(nearest, lightness - LIGHTNESS_NUDGE)


def saturation_score(rgb: tuple) -> int:
    """HSV saturation, penalized for values far from the mid-bright range."""
    value = hsv_value(rgb)
    return hsv_saturation(rgb) + (SATURATION_VALUE_CENTER - abs(SATURATION_VALUE_CENTER - value))


def derive_palette(clusters: list, threshold: int) -> PaletteResult:
    """Build the published result from the final, sorted cluster list."""
    if not clusters:
        return PaletteResult.empty()

    dominant = clusters[0].centroid
    most_saturated = None
    closest_to_black = WHITE
    closest_to_white = BLACK
    entries = []

    for cluster in clusters:
        color = cluster.centroid
        entries.append(PaletteEntry(
            color=color,
            ratio=cluster.ratio,
            contrast_color=contrast_color(color, clusters, dominant, threshold),
        ))

        if most_saturated is None or saturation_score(color) > saturation_score(most_saturated):
            most_saturated = color
        if gray(color) > gray(closest_to_white):
            closest_to_white = color
        if gray(color) < gray(closest_to_black):
            closest_to_black = color

    return PaletteResult(
        palette=tuple(entries),
        dominant=dominant,
        most_saturated=most_saturated,
        closest_to_black=closest_to_black,
        closest_to_white=closest_to_white,
        suggested_contrast=entries[0].contrast_color,
    )


# =============================================================================
# Main Pipeline
# =============================================================================

def extract(image, config: Optional[PaletteConfig] = None,
            cancel: Optional[CancellationToken] = None) -> PaletteResult:
    """
    Extract the palette of an image.

    Args:
        image: RasterImage, PIL image, numpy array, path, or None
        config: Extraction settings (defaults to PaletteConfig())
        cancel: Checked between stages; when set, ExtractionCancelled is raised

    Returns:
        PaletteResult; the empty result for missing, zero-sized or fully
        transparent images.
    """
    config = config or PaletteConfig()
    threshold = config.minimum_square_distance
    _check(cancel)

    image = as_raster(image)
    if image is None or image.is_null:
        return PaletteResult.empty()

    # Stage 1: Sampling and first pass
    samples = collect_samples(image)
    if not samples:
        logger.debug(f"No opaque pixels in {image}")
        return PaletteResult.empty()

    clusters = cluster_samples(samples, threshold)
    logger.debug(f"Sampled {len(samples)} pixels into {len(clusters)} clusters")
    _check(cancel)

    # Stage 2: Refinement
    clusters = sort_clusters(refine_clusters(clusters, samples, threshold, cancel))

    # Stage 3: Compaction
    _check(cancel)
    merged = merge_clusters(clusters, threshold)
    logger.debug(f"Merged {len(clusters)} clusters down to {len(merged)}")

    # Stage 4: Derived colors
    _check(cancel)
    return derive_palette(merged, threshold)


if __name__ == '__main__':
    import sys

    if len(sys.argv) < 2:
        print("Usage: python extract_colors.py <image_path>")
        sys.exit(1)

    result = extract(sys.argv[1])
    for entry in result.palette:
        print(f"  {entry.hex}  {entry.ratio * 100:5.1f}%  contrast {rgb_to_hex(entry.contrast_color)}")
