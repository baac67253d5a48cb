#!/usr/bin/env python3
"""Batch extract palettes and generate HTML reports."""

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

from analyze import run_pipeline, render_html
from palette_config import PaletteConfig, configure_logging
from raster_image import GRAB_SIZE


def find_images(directory: Path) -> list[Path]:
    """Find all image files in directory."""
    extensions = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.gif'}
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in extensions
    )


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Batch extract palettes and generate HTML reports.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Directory containing images to analyze'
    )
    parser.add_argument(
        '--output', '-o',
        required=True,
        help='Directory for HTML output files'
    )
    parser.add_argument(
        '--threshold',
        type=int,
        default=None,
        help='Clustering threshold (squared distance)'
    )
    parser.add_argument(
        '--no-downscale',
        action='store_true',
        help=f'Process at full resolution instead of downscaling to {GRAB_SIZE}px'
    )

    args = parser.parse_args(argv)

    input_dir = Path(args.input)
    output_dir = Path(args.output)

    # Validate input directory
    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        return 2

    try:
        configure_logging()
        if args.threshold is not None:
            config = PaletteConfig(minimum_square_distance=args.threshold)
        else:
            config = PaletteConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    images = find_images(input_dir)
    if not images:
        print(f"No images found in {input_dir}", file=sys.stderr)
        return 2

    output_dir.mkdir(parents=True, exist_ok=True)

    total = len(images)
    succeeded = 0
    failed = []
    downscale = not args.no_downscale

    batch_start = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        try:
            img_start = time.perf_counter()
            result = run_pipeline(str(image_path), config, downscale=downscale)
            html = render_html(result, str(image_path))
            img_elapsed = time.perf_counter() - img_start

            output_file = output_dir / f"{image_path.stem}-palette.html"
            if output_file.exists():
                print(f"  Warning: Overwriting {output_file.name}", file=sys.stderr)
            output_file.write_text(html)

            dominant = result.palette[0].hex if result.palette else "empty"
            print(f"[{i}/{total}] {image_path.name} → {len(result.palette)} colors, "
                  f"dominant {dominant} ({img_elapsed:.2f}s)")
            succeeded += 1

        except (OSError, ValueError) as e:
            error_msg = f"{type(e).__name__}: {e}"
            print(f"[{i}/{total}] {image_path.name} → ERROR: {error_msg}", file=sys.stderr)
            failed.append((image_path.name, error_msg))

    batch_elapsed = time.perf_counter() - batch_start

    # Summary
    print()
    print(f"Completed: {succeeded}/{total} succeeded in {batch_elapsed:.2f}s")
    if succeeded > 0:
        print(f"Average: {batch_elapsed / succeeded:.2f}s per image")
    if failed:
        print(f"Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
