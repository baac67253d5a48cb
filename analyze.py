#!/usr/bin/env python3
"""
Palette reports for a single image.

Runs the extractor and renders its result as prose, an HTML page, a swatch
PNG or JSON.
"""

import json
from html import escape
from typing import Optional

from loguru import logger
from PIL import Image, ImageDraw

from color_space import rgb_to_hex, gray
from extract_colors import PaletteResult, extract
from palette_config import PaletteConfig
from raster_image import GRAB_SIZE, load_image


# =============================================================================
# Text
# =============================================================================

def _describe(label: str, rgb: Optional[tuple]) -> str:
    if rgb is None:
        return f"{label}: -"
    return f"{label}: {rgb_to_hex(rgb)} / RGB{tuple(rgb)}"


def render(result: PaletteResult) -> str:
    """Render a palette result as prose."""
    if result.is_empty:
        return "PALETTE: empty (no opaque pixels)"

    lines = []
    lines.append(f"PALETTE: {len(result.palette)} colors")
    lines.append("")

    for i, entry in enumerate(result.palette, 1):
        lines.append(f"{i}. {entry.hex} / RGB{tuple(entry.color)}")
        lines.append(f"  Coverage: {entry.ratio * 100:.1f}% | Contrast: {rgb_to_hex(entry.contrast_color)}")
    lines.append("")

    lines.append(_describe("Dominant", result.dominant))
    lines.append(_describe("Most saturated", result.most_saturated))
    lines.append(_describe("Closest to black", result.closest_to_black))
    lines.append(_describe("Closest to white", result.closest_to_white))
    lines.append(_describe("Suggested contrast", result.suggested_contrast))

    return "\n".join(lines)


# =============================================================================
# HTML
# =============================================================================

def render_html(result: PaletteResult, image_path: str) -> str:
    """Render a palette result as a standalone HTML page."""
    safe_path = escape(image_path)

    css = """
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body {
            font-family: system-ui, -apple-system, sans-serif;
            background: #f5f5f5;
            color: #333;
            line-height: 1.5;
            padding: 2rem;
            max-width: 900px;
            margin: 0 auto;
        }
        h1 { font-size: 1.5rem; margin-bottom: 0.5rem; }
        h2 { font-size: 1.2rem; margin: 2rem 0 1rem; border-bottom: 1px solid #ddd; padding-bottom: 0.5rem; }
        .meta { color: #666; font-size: 0.9rem; margin-bottom: 1rem; }
        .palette-strip {
            display: flex;
            height: 80px;
            border-radius: 8px;
            overflow: hidden;
            box-shadow: 0 2px 8px rgba(0,0,0,0.1);
            margin: 1.5rem 0;
        }
        .palette-strip .swatch {
            display: flex;
            align-items: flex-end;
            justify-content: center;
            padding: 0.5rem;
            font-size: 0.7rem;
            font-weight: 500;
        }
        .derived {
            display: grid;
            grid-template-columns: repeat(auto-fill, minmax(160px, 1fr));
            gap: 1rem;
        }
        .derived .card {
            border-radius: 8px;
            padding: 1rem;
            box-shadow: 0 1px 3px rgba(0,0,0,0.08);
            font-size: 0.85rem;
        }
        .derived .card .values { font-family: monospace; }
    """

    lines = []
    lines.append('<!DOCTYPE html>')
    lines.append('<html lang="en">')
    lines.append('<head>')
    lines.append('<meta charset="utf-8">')
    lines.append(f'<title>Palette: {safe_path}</title>')
    lines.append(f'<style>{css}</style>')
    lines.append('</head>')
    lines.append('<body>')
    lines.append(f'<h1>{safe_path}</h1>')

    if result.is_empty:
        lines.append('<p class="meta">No opaque pixels; the palette is empty.</p>')
        lines.append('</body>')
        lines.append('</html>')
        return '\n'.join(lines)

    lines.append(f'<p class="meta">{len(result.palette)} colors</p>')

    # Strip: width follows coverage, label drawn in the swatch's contrast color
    lines.append('<div class="palette-strip">')
    for entry in result.palette:
        fg = rgb_to_hex(entry.contrast_color)
        lines.append(
            f'  <div class="swatch" style="background:{entry.hex}; color:{fg}; '
            f'flex:{entry.ratio:.4f}">{entry.hex} {entry.ratio * 100:.1f}%</div>'
        )
    lines.append('</div>')

    lines.append('<h2>Derived Colors</h2>')
    lines.append('<div class="derived">')
    for label, rgb in [
        ('Dominant', result.dominant),
        ('Most saturated', result.most_saturated),
        ('Closest to black', result.closest_to_black),
        ('Closest to white', result.closest_to_white),
        ('Suggested contrast', result.suggested_contrast),
    ]:
        hex_val = rgb_to_hex(rgb)
        fg = '#000' if gray(rgb) >= 128 else '#fff'
        lines.append(f'  <div class="card" style="background:{hex_val}; color:{fg}">')
        lines.append(f'    <div>{label}</div>')
        lines.append(f'    <div class="values">{hex_val}</div>')
        lines.append('  </div>')
    lines.append('</div>')

    lines.append('</body>')
    lines.append('</html>')

    return '\n'.join(lines)


# =============================================================================
# Swatch image
# =============================================================================

def visualize_palette(result: PaletteResult, output_path: str) -> None:
    """
    Save a swatch image of the palette with coverage percentages.

    Each percentage is drawn in the swatch's own contrast color.
    """
    swatch_size = 80
    padding = 10
    count = max(len(result.palette), 1)
    cols = min(count, 6)
    rows = (count + cols - 1) // cols

    img_width = cols * (swatch_size + padding) + padding
    img_height = rows * (swatch_size + padding) + padding

    img = Image.new('RGB', (img_width, img_height), (240, 240, 240))
    draw = ImageDraw.Draw(img)

    for i, entry in enumerate(result.palette):
        row = i // cols
        col = i % cols

        x = padding + col * (swatch_size + padding)
        y = padding + row * (swatch_size + padding)

        draw.rectangle([x, y, x + swatch_size, y + swatch_size], fill=tuple(entry.color))

        text = f"{entry.ratio * 100:.1f}%"
        bbox = draw.textbbox((0, 0), text)
        text_width = bbox[2] - bbox[0]
        text_x = x + (swatch_size - text_width) // 2
        draw.text((text_x, y + swatch_size - 16), text, fill=tuple(entry.contrast_color))

    img.save(output_path)
    logger.debug(f"Saved palette swatches to {output_path}")


# =============================================================================
# Main Pipeline
# =============================================================================

def run_pipeline(image_path: str, config: Optional[PaletteConfig] = None,
                 downscale: bool = True) -> PaletteResult:
    """Load an image and extract its palette."""
    image = load_image(image_path, grab_size=GRAB_SIZE if downscale else None)
    return extract(image, config)


def analyze_image(image_path: str, config: Optional[PaletteConfig] = None,
                  downscale: bool = True) -> tuple[str, str]:
    """Run the full analysis pipeline on an image.

    Returns:
        Tuple of (prose_output, html_output)
    """
    result = run_pipeline(image_path, config, downscale=downscale)
    return render(result), render_html(result, image_path)


# =============================================================================
# CLI
# =============================================================================

def main(argv: Optional[list] = None) -> int:
    import argparse
    import sys
    from pathlib import Path

    from palette_config import configure_logging

    parser = argparse.ArgumentParser(
        description='Analyze an image and extract its color palette.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    parser.add_argument(
        '--output', '-o',
        nargs='?',
        const=True,
        default=None,
        help='Write HTML report. Optionally specify path, otherwise auto-names from input.'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the palette as JSON instead of prose'
    )
    parser.add_argument(
        '--swatch',
        default=None,
        help='Write a swatch PNG to this path'
    )
    parser.add_argument(
        '--threshold',
        type=int,
        default=None,
        help='Clustering threshold (squared distance); defaults to PALETTE_MIN_SQUARE_DISTANCE or 32000'
    )
    parser.add_argument(
        '--no-downscale',
        action='store_true',
        help=f'Sample at full resolution instead of downscaling to {GRAB_SIZE}px'
    )

    args = parser.parse_args(argv)
    image_path = Path(args.input)

    try:
        configure_logging()
        if args.threshold is not None:
            config = PaletteConfig(minimum_square_distance=args.threshold)
        else:
            config = PaletteConfig.from_env()
        result = run_pipeline(str(image_path), config, downscale=not args.no_downscale)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(render(result))

    if args.swatch:
        try:
            visualize_palette(result, args.swatch)
            print(f"\nWrote: {args.swatch}")
        except OSError as e:
            print(f"Error writing swatch: {e}", file=sys.stderr)
            return 1

    if args.output:
        if args.output is True:
            output_path = image_path.with_name(f"{image_path.stem}-palette.html")
        else:
            output_path = Path(args.output)

        try:
            output_path.write_text(render_html(result, str(image_path)))
            print(f"\nWrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            return 1

    return 0


if __name__ == '__main__':
    raise SystemExit(main())
