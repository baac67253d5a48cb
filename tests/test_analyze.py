"""
Tests for palette reports and the command-line entry points.
"""

import json

import pytest
from PIL import Image

import batch_analyze
from analyze import render, render_html, visualize_palette, analyze_image, run_pipeline, main
from extract_colors import PaletteResult, extract


RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


@pytest.fixture
def three_color_result(make_raster):
    return extract(make_raster([[RED, RED, RED, GREEN, GREEN, BLUE]]))


class TestRender:
    """Test prose rendering"""

    def test_lists_every_swatch(self, three_color_result):
        text = render(three_color_result)
        assert text.startswith("PALETTE: 3 colors")
        for hex_val in ("#ff0000", "#00ff00", "#0000ff"):
            assert hex_val in text
        assert "Coverage: 50.0%" in text
        assert "Suggested contrast: #00d800" in text

    def test_empty(self):
        assert "empty" in render(PaletteResult.empty())


class TestRenderHtml:
    """Test HTML rendering"""

    def test_contains_swatches_and_escapes_path(self, three_color_result):
        html = render_html(three_color_result, "images/<cat>.png")
        assert "&lt;cat&gt;" in html
        assert "<cat>" not in html
        assert "background:#ff0000" in html
        assert "color:#00d800" in html
        assert html.rstrip().endswith("</html>")

    def test_empty(self):
        html = render_html(PaletteResult.empty(), "blank.png")
        assert "palette is empty" in html


def test_visualize_palette(tmp_path, three_color_result):
    output = tmp_path / "swatches.png"
    visualize_palette(three_color_result, str(output))

    img = Image.open(output)
    assert img.size == (3 * 90 + 10, 100)
    assert img.getpixel((20, 20)) == RED


class TestPipeline:
    """Test loading plus extraction"""

    def test_run_pipeline(self, solid_png):
        result = run_pipeline(str(solid_png()))
        assert result.dominant == (200, 100, 50)

    def test_analyze_image(self, solid_png):
        prose, html = analyze_image(str(solid_png()))
        assert "#c86432" in prose
        assert "#c86432" in html


class TestAnalyzeCli:
    """Test the single-image CLI"""

    def test_prints_report(self, solid_png, capsys):
        assert main(['--input', str(solid_png())]) == 0
        out = capsys.readouterr().out
        assert "PALETTE: 1 colors" in out
        assert "#c86432" in out

    def test_json_output(self, solid_png, capsys):
        assert main(['--input', str(solid_png()), '--json']) == 0
        data = json.loads(capsys.readouterr().out)
        assert data['dominant'] == "#c86432"
        assert data['palette'][0]['ratio'] == pytest.approx(1.0)
        assert data['suggested_contrast'] == "#141414"

    def test_writes_html_next_to_input(self, solid_png):
        path = solid_png()
        assert main(['--input', str(path), '--output']) == 0
        assert (path.parent / "solid-palette.html").exists()

    def test_writes_swatch(self, solid_png, tmp_path):
        swatch = tmp_path / "out.png"
        assert main(['--input', str(solid_png()), '--swatch', str(swatch)]) == 0
        assert swatch.exists()

    def test_threshold_option(self, tmp_path, capsys):
        path = tmp_path / "pair.png"
        img = Image.new('RGB', (2, 1))
        img.putpixel((0, 0), (0, 0, 0))
        img.putpixel((1, 0), (0, 0, 10))
        img.save(path)

        assert main(['--input', str(path), '--threshold', '300']) == 0
        assert "PALETTE: 2 colors" in capsys.readouterr().out
        assert main(['--input', str(path), '--threshold', '301']) == 0
        assert "PALETTE: 1 colors" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(['--input', str(tmp_path / "nope.png")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_threshold(self, solid_png, capsys):
        assert main(['--input', str(solid_png()), '--threshold', '0']) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_log_level(self, solid_png, monkeypatch, capsys):
        monkeypatch.setenv("PALETTE_LOG_LEVEL", "chatty")
        assert main(['--input', str(solid_png())]) == 1
        assert "Error" in capsys.readouterr().err


class TestBatchCli:
    """Test the batch CLI"""

    def test_writes_report_per_image(self, tmp_path, solid_png, capsys):
        solid_png(name="a.png")
        solid_png(color=(10, 20, 30), name="b.png")
        (tmp_path / "readme.txt").write_text("skip me")
        out_dir = tmp_path / "reports"

        assert batch_analyze.main(['--input', str(tmp_path), '--output', str(out_dir)]) == 0
        assert (out_dir / "a-palette.html").exists()
        assert (out_dir / "b-palette.html").exists()
        assert "Completed: 2/2" in capsys.readouterr().out

    def test_reports_failures(self, tmp_path, solid_png, capsys):
        solid_png(name="good.png")
        (tmp_path / "broken.png").write_text("not an image")

        assert batch_analyze.main(['--input', str(tmp_path), '--output', str(tmp_path / "out")]) == 1
        captured = capsys.readouterr()
        assert "Completed: 1/2" in captured.out
        assert "broken.png" in captured.err

    def test_missing_input_dir(self, tmp_path):
        assert batch_analyze.main(['--input', str(tmp_path / "nope"), '--output', str(tmp_path)]) == 2

    def test_no_images(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert batch_analyze.main(['--input', str(empty), '--output', str(tmp_path / "out")]) == 2

    def test_invalid_log_level(self, tmp_path, solid_png, monkeypatch, capsys):
        solid_png(name="a.png")
        monkeypatch.setenv("PALETTE_LOG_LEVEL", "chatty")
        assert batch_analyze.main(['--input', str(tmp_path), '--output', str(tmp_path / "out")]) == 2
        assert "Error" in capsys.readouterr().err
