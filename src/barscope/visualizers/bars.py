"""
Rounded spectrum-bar renderer.

Draws one frame as a horizontal row of rounded bars, each vertically
centred in a spectrum band near the bottom of the image.  Bar shape is
decided per pixel: a pixel is inside when it falls in the rectangle's
cross-shaped core or within ``r`` of one of the four corner-circle
centres.  The test is evaluated with numpy over a whole bar at once and
the resulting masks are cached per (width, height, radius).
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterator, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from barscope.config import RenderConfig
from barscope.core.spectrum import SpectrumResult
from barscope.errors import RenderError


def point_in_rounded_rect(
    px: int, py: int, x0: int, y0: int, w: int, h: int, r: int
) -> bool:
    """Return True if pixel (px, py) lies inside the rounded rectangle."""
    x1, y1 = x0 + w, y0 + h
    if r == 0:
        return x0 <= px < x1 and y0 <= py < y1

    in_center = x0 + r <= px < x1 - r and y0 <= py < y1
    in_middle = x0 <= px < x1 and y0 + r <= py < y1 - r
    if in_center or in_middle:
        return True

    corners = (
        (x0 + r, y0 + r),
        (x1 - r - 1, y0 + r),
        (x0 + r, y1 - r - 1),
        (x1 - r - 1, y1 - r - 1),
    )
    return any((px - cx) ** 2 + (py - cy) ** 2 <= r * r for cx, cy in corners)


@lru_cache(maxsize=2048)
def rounded_rect_mask(w: int, h: int, r: int) -> np.ndarray:
    """
    Boolean (h, w) coverage mask of a rounded rectangle anchored at (0, 0).

    Same inclusion rule as :func:`point_in_rounded_rect`.  The returned
    array is cached and read-only.
    """
    ys = np.arange(h)[:, None]
    xs = np.arange(w)[None, :]

    if r == 0:
        mask = np.ones((h, w), dtype=bool)
    else:
        in_center = (xs >= r) & (xs < w - r) & (ys >= 0)
        in_middle = (ys >= r) & (ys < h - r) & (xs >= 0)
        mask = in_center | in_middle
        for cx, cy in ((r, r), (w - r - 1, r), (r, h - r - 1), (w - r - 1, h - r - 1)):
            mask |= (xs - cx) ** 2 + (ys - cy) ** 2 <= r * r

    mask.setflags(write=False)
    return mask


@dataclass(frozen=True)
class BarGeometry:
    """Horizontal layout shared by every bar of a frame."""

    bar_count: int
    bar_width: int
    gap: int
    radius: int
    start_x: int
    band_top: int  # first row of the spectrum band

    def bar_x(self, index: int) -> int:
        """Left edge of bar *index*."""
        return self.start_x + index * (self.bar_width + self.gap)


class BarRenderer:
    """
    Renders normalized spectra as rows of rounded bars.

    Frames are (height, width, 4) uint8 RGBA arrays.  Rendering is a pure
    function of the input values and the configuration, so identical input
    always yields identical bytes.
    """

    def __init__(self, config: Optional[RenderConfig] = None):
        """
        Initialize the renderer.

        Args:
            config: Output resolution, spectrum band placement and colours.

        Raises:
            RenderError: If dimensions are invalid or the background image
                cannot be loaded.
        """
        self.config = config or RenderConfig()
        self._validate()
        self._background = self._build_background()
        self._geometry_cache: dict[int, BarGeometry] = {}

    def _validate(self) -> None:
        cfg = self.config
        if cfg.width <= 0 or cfg.height <= 0:
            raise RenderError(f"image dimensions must be positive, got {cfg.width}x{cfg.height}")
        if cfg.spectrum_height < 0:
            raise RenderError(f"spectrum height must not be negative, got {cfg.spectrum_height}")
        if cfg.spectrum_width is not None and cfg.spectrum_width <= 0:
            raise RenderError(f"spectrum width must be positive, got {cfg.spectrum_width}")
        if cfg.bar_gap < 0 or cfg.max_corner_radius < 0:
            raise RenderError("bar gap and corner radius must not be negative")

    def _build_background(self) -> np.ndarray:
        cfg = self.config
        if cfg.background_image is None:
            return np.full((cfg.height, cfg.width, 4), cfg.background_color, dtype=np.uint8)

        try:
            with Image.open(cfg.background_image) as img:
                rgba = img.convert("RGBA")
        except OSError as exc:
            raise RenderError(f"failed to load background image: {exc}", cfg.background_image) from exc

        if rgba.size != (cfg.width, cfg.height):
            rgba = rgba.resize((cfg.width, cfg.height), Image.BILINEAR)
        return np.asarray(rgba, dtype=np.uint8).copy()

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @staticmethod
    def normalize(values: Sequence[float], global_max: float) -> np.ndarray:
        """Scale bar values by the clip maximum into [0, 1]."""
        values = np.asarray(values, dtype=np.float32)
        if global_max <= 0:
            return np.zeros_like(values)
        return np.clip(values / global_max, 0.0, 1.0)

    def bar_geometry(self, bar_count: int) -> BarGeometry:
        """
        Compute bar width, corner radius and strip placement.

        Raises:
            RenderError: If there are no bars or they would be narrower
                than one pixel.
        """
        if bar_count in self._geometry_cache:
            return self._geometry_cache[bar_count]

        cfg = self.config
        if bar_count <= 0:
            raise RenderError(f"bar count must be positive, got {bar_count}")

        strip_width = min(cfg.spectrum_width or cfg.width, cfg.width)
        total_gaps = (bar_count - 1) * cfg.bar_gap
        bar_width = (strip_width - total_gaps) // bar_count if strip_width > total_gaps else 0
        if bar_width < 1:
            raise RenderError(
                f"{bar_count} bars with {cfg.bar_gap}px gaps do not fit in {strip_width}px"
            )

        geometry = BarGeometry(
            bar_count=bar_count,
            bar_width=bar_width,
            gap=cfg.bar_gap,
            radius=min(cfg.max_corner_radius, max(1, bar_width // 2)),
            start_x=(cfg.width - (bar_count * bar_width + total_gaps)) // 2,
            band_top=cfg.height - cfg.spectrum_y_from_bottom - cfg.spectrum_height,
        )
        self._geometry_cache[bar_count] = geometry
        return geometry

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _draw_bar(self, frame: np.ndarray, x0: int, y0: int, w: int, h: int, r: int) -> None:
        """Fill one rounded bar, clipped to the frame."""
        img_h, img_w = frame.shape[:2]
        cx0, cy0 = max(x0, 0), max(y0, 0)
        cx1, cy1 = min(x0 + w, img_w), min(y0 + h, img_h)
        if cx0 >= cx1 or cy0 >= cy1:
            return

        mask = rounded_rect_mask(w, h, min(r, w // 2, h // 2))
        sub = mask[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0]
        frame[cy0:cy1, cx0:cx1][sub] = self.config.bar_color

    def render_frame(self, values: Sequence[float], global_max: float) -> np.ndarray:
        """
        Render one spectrum frame.

        Args:
            values: Raw bar amplitudes for this frame.
            global_max: Clip-wide maximum amplitude.

        Returns:
            (height, width, 4) uint8 RGBA array.
        """
        norm = self.normalize(values, global_max)
        geometry = self.bar_geometry(len(norm))
        spectrum_height = self.config.spectrum_height

        frame = self._background.copy()
        for i, level in enumerate(norm):
            bar_height = int(float(level) * spectrum_height)
            if bar_height == 0:
                continue
            self._draw_bar(
                frame,
                geometry.bar_x(i),
                geometry.band_top + (spectrum_height - bar_height) // 2,
                geometry.bar_width,
                bar_height,
                geometry.radius,
            )
        return frame

    def render_result(
        self,
        result: SpectrumResult,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[Tuple[int, np.ndarray]]:
        """
        Render every frame of an analysed clip, one at a time.

        Args:
            result: Output of SpectrumAnalyzer.analyze().
            progress_callback: Optional callback(current, total).

        Yields:
            (frame_index, frame) pairs in index order.
        """
        total = result.n_frames
        # Fail before the first frame rather than part way through
        self.bar_geometry(result.bars)
        for i in range(total):
            yield i, self.render_frame(result.spectra[i], result.global_max)
            if progress_callback:
                progress_callback(i + 1, total)

    @staticmethod
    def to_image(frame: np.ndarray) -> Image.Image:
        """Wrap a rendered frame as a PIL RGBA image."""
        return Image.fromarray(frame)
