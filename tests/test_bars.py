"""Tests for the rounded-bar renderer."""

import numpy as np
import pytest
from PIL import Image

from barscope.config import RenderConfig
from barscope.core.spectrum import SpectrumResult
from barscope.errors import RenderError
from barscope.visualizers.bars import (
    BarRenderer,
    point_in_rounded_rect,
    rounded_rect_mask,
)

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def _renderer(w: int = 40, h: int = 300, spectrum_height: int = 100, **kwargs) -> BarRenderer:
    return BarRenderer(RenderConfig(width=w, height=h, spectrum_height=spectrum_height, **kwargs))


def _bar_pixels(frame: np.ndarray, color=BLACK) -> np.ndarray:
    return np.all(frame == np.array(color, dtype=np.uint8), axis=2)


# ---------------------------------------------------------------------------
# Inclusion test
# ---------------------------------------------------------------------------

class TestPointInRoundedRect:
    def test_square_corners_inside(self):
        assert point_in_rounded_rect(10, 10, 0, 0, 20, 20, 0)
        assert point_in_rounded_rect(19, 19, 0, 0, 20, 20, 0)

    def test_square_corners_outside(self):
        assert not point_in_rounded_rect(20, 10, 0, 0, 20, 20, 0)
        assert not point_in_rounded_rect(10, 20, 0, 0, 20, 20, 0)
        assert not point_in_rounded_rect(5, 5, 10, 10, 20, 20, 0)

    def test_rounded_corner_inside(self):
        assert point_in_rounded_rect(11, 11, 10, 10, 20, 20, 2)
        assert point_in_rounded_rect(28, 11, 10, 10, 20, 20, 2)

    def test_rounded_corner_cut(self):
        assert not point_in_rounded_rect(10, 10, 10, 10, 20, 20, 4)
        assert not point_in_rounded_rect(29, 29, 10, 10, 20, 20, 4)

    def test_center(self):
        assert point_in_rounded_rect(15, 15, 10, 10, 20, 20, 2)


class TestRoundedRectMask:
    @pytest.mark.parametrize("w, h, r", [(9, 20, 4), (5, 5, 2), (12, 3, 1), (7, 30, 0), (1, 1, 0)])
    def test_matches_point_test(self, w, h, r):
        mask = rounded_rect_mask(w, h, r)
        assert mask.shape == (h, w)
        expected = np.array(
            [[point_in_rounded_rect(x, y, 0, 0, w, h, r) for x in range(w)] for y in range(h)]
        )
        np.testing.assert_array_equal(mask, expected)

    def test_mask_is_cached_and_read_only(self):
        a = rounded_rect_mask(9, 20, 4)
        assert a is rounded_rect_mask(9, 20, 4)
        assert not a.flags.writeable


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class TestRenderErrors:
    @pytest.mark.parametrize("w, h", [(0, 100), (100, 0), (-5, 10)])
    def test_non_positive_dimensions(self, w, h):
        with pytest.raises(RenderError) as excinfo:
            BarRenderer(RenderConfig(width=w, height=h))
        assert excinfo.value.stage == "render"

    def test_zero_bars(self):
        with pytest.raises(RenderError, match="bar count"):
            _renderer().render_frame([], 1.0)

    def test_bars_too_narrow(self):
        with pytest.raises(RenderError):
            _renderer(w=10).render_frame(np.ones(8), 1.0)

    def test_missing_background_image(self, tmp_path):
        with pytest.raises(RenderError):
            BarRenderer(RenderConfig(background_image=tmp_path / "missing.png"))


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_scaled_into_unit_range(self):
        norm = BarRenderer.normalize([0.0, 2.0, 4.0, 6.0], 4.0)
        np.testing.assert_allclose(norm, [0.0, 0.5, 1.0, 1.0])

    def test_silent_clip_gives_zeros(self):
        norm = BarRenderer.normalize([0.0, 0.0], 0.0)
        assert np.all(norm == 0.0)


class TestGeometry:
    def test_full_width_strip(self):
        geo = _renderer().bar_geometry(4)
        assert geo.bar_width == 9
        assert geo.start_x == 0
        assert geo.radius == 4
        assert geo.band_top == 200

    def test_centred_narrow_strip(self):
        geo = _renderer(spectrum_width=20).bar_geometry(4)
        assert geo.bar_width == 4
        assert geo.start_x == 10
        assert geo.radius == 2

    def test_band_offset_from_bottom(self):
        geo = _renderer(spectrum_y_from_bottom=30).bar_geometry(4)
        assert geo.band_top == 170

    def test_thin_bars_keep_radius_one(self):
        geo = _renderer(w=64).bar_geometry(32)
        assert geo.bar_width == 1
        assert geo.radius == 1


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class TestRenderFrame:
    def test_dimensions(self):
        frame = _renderer(w=64, h=32, spectrum_height=16).render_frame(np.full(8, 0.5), 1.0)
        assert frame.shape == (32, 64, 4)
        assert frame.dtype == np.uint8

    def test_tall_band_is_clipped(self):
        frame = _renderer(w=64, h=32, spectrum_height=500).render_frame(np.ones(8), 1.0)
        assert frame.shape == (32, 64, 4)
        assert _bar_pixels(frame).any()

    def test_silent_frame_is_background(self):
        renderer = _renderer()
        frame = renderer.render_frame(np.zeros(4), 0.0)
        assert np.all(frame == np.array(WHITE, dtype=np.uint8))

    def test_peak_bar_reaches_full_height(self):
        peak = 5.5
        frame = _renderer().render_frame([peak, 1.0, 0.0, 0.0], peak)
        # Column 4 is the middle of bar 0 (x 0-8)
        column = _bar_pixels(frame)[:, 4]
        assert column.sum() == 100
        rows = np.flatnonzero(column)
        assert rows[0] == 200 and rows[-1] == 299

    def test_odd_band_height_fills_band(self):
        frame = _renderer(spectrum_height=101).render_frame([1.0, 0.0, 0.0, 0.0], 1.0)
        rows = np.flatnonzero(_bar_pixels(frame)[:, 4])
        assert len(rows) == 101
        assert rows[0] == 199 and rows[-1] == 299

    def test_odd_band_height_with_offset(self):
        frame = _renderer(spectrum_height=101, spectrum_y_from_bottom=50).render_frame(
            [1.0, 0.0, 0.0, 0.0], 1.0
        )
        rows = np.flatnonzero(_bar_pixels(frame)[:, 4])
        assert len(rows) == 101
        assert rows[0] == 149 and rows[-1] == 249

    def test_short_bar_centred_in_band(self):
        frame = _renderer(spectrum_height=101).render_frame([1.0, 0.5, 0.0, 0.0], 1.0)
        # int(0.5 * 101) = 50 rows, (101 - 50) // 2 = 25 rows above within the band
        rows = np.flatnonzero(_bar_pixels(frame)[:, 14])
        assert len(rows) == 50
        assert rows[0] == 199 + 25

    def test_bar_height_proportional(self):
        frame = _renderer().render_frame([4.0, 2.0, 1.0, 0.0], 4.0)
        mask = _bar_pixels(frame)
        heights = [mask[:, 4 + i * 10].sum() for i in range(4)]
        assert heights == [100, 50, 25, 0]

    def test_values_above_max_are_clamped(self):
        frame = _renderer().render_frame([10.0, 0.0, 0.0, 0.0], 2.0)
        assert _bar_pixels(frame)[:, 4].sum() == 100

    def test_corners_are_rounded(self):
        frame = _renderer().render_frame([1.0, 0.0, 0.0, 0.0], 1.0)
        mask = _bar_pixels(frame)
        assert not mask[200, 0]
        assert mask[204, 0]
        assert mask[200, 4]

    def test_rerender_is_byte_identical(self):
        values = np.array([0.3, 2.2, 1.7, 0.9], dtype=np.float32)
        a = _renderer().render_frame(values, 2.2)
        b = _renderer().render_frame(values, 2.2)
        assert a.tobytes() == b.tobytes()

    def test_colours(self):
        renderer = _renderer(bar_color=(255, 0, 0, 255), background_color=(0, 0, 0, 0))
        frame = renderer.render_frame([1.0, 0.0, 0.0, 0.0], 1.0)
        assert tuple(frame[0, 0]) == (0, 0, 0, 0)
        assert tuple(frame[250, 4]) == (255, 0, 0, 255)

    def test_background_image_resized(self, tmp_path):
        path = tmp_path / "bg.png"
        Image.new("RGB", (10, 10), (0, 128, 0)).save(path)
        renderer = _renderer(background_image=path)
        frame = renderer.render_frame(np.zeros(4), 1.0)
        assert frame.shape == (300, 40, 4)
        assert tuple(frame[10, 10]) == (0, 128, 0, 255)

    def test_to_image(self):
        renderer = _renderer()
        img = renderer.to_image(renderer.render_frame(np.zeros(4), 0.0))
        assert img.mode == "RGBA"
        assert img.size == (40, 300)


class TestRenderResult:
    def test_yields_every_frame_in_order(self):
        spectra = np.random.default_rng(0).random((5, 4)).astype(np.float32)
        result = SpectrumResult(spectra, float(spectra.max()), fps=30, sample_rate=44100, duration=5 / 30)
        log = []
        frames = list(_renderer().render_result(result, lambda c, t: log.append((c, t))))
        assert [i for i, _ in frames] == [0, 1, 2, 3, 4]
        assert log == [(1, 5), (2, 5), (3, 5), (4, 5), (5, 5)]

    def test_bad_geometry_fails_before_first_frame(self):
        result = SpectrumResult(np.ones((3, 100), dtype=np.float32), 1.0, fps=30, sample_rate=44100, duration=0.1)
        frames = _renderer(w=10).render_result(result)
        with pytest.raises(RenderError):
            next(frames)
