"""
Configuration for spectrum analysis and bar rendering.

Analysis settings are frozen so a single instance can be shared by every
frame computation; render settings follow the renderer-config dataclass
pattern (plain defaults, overridable per field).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

Color = Tuple[int, int, int, int]

DEFAULT_FPS = 30
DEFAULT_BARS = 128
DEFAULT_SPECTRUM_HEIGHT = 200
FFT_SIZE = 2048
OVERLAP = 0.5


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings for per-frame spectrum analysis."""

    fps: float = DEFAULT_FPS
    bars: int = DEFAULT_BARS
    fft_size: int = FFT_SIZE
    # Checked and reported only; windows are centred on frame timestamps,
    # so the real overlap is 1 - sample_rate / (fps * fft_size)
    overlap: float = OVERLAP
    # Lowest bar edge in Hz; None means one FFT bin (sample_rate / fft_size)
    f_min: Optional[float] = None
    # Frames per FFT batch, bounds window memory to block_size * fft_size
    block_size: int = 256


@dataclass
class RenderConfig:
    """Settings for rasterizing one spectrum frame."""

    width: int = 1920
    height: int = 1080
    spectrum_height: int = DEFAULT_SPECTRUM_HEIGHT
    # Distance from the frame bottom to the bottom edge of the spectrum band
    spectrum_y_from_bottom: int = 0
    # Width of the centred bar strip; None spans the full frame
    spectrum_width: Optional[int] = None
    bar_gap: int = 1
    max_corner_radius: int = 4
    bar_color: Color = (0, 0, 0, 255)
    background_color: Color = (255, 255, 255, 255)
    background_image: Optional[Path] = None


def parse_hex_color(value: str) -> Color:
    """
    Parse a hex RGB colour such as ``ff6600`` or ``#1a1a2e``.

    Returns:
        Opaque RGBA tuple.

    Raises:
        ValueError: If the value is not six hex digits.
    """
    digits = value[1:] if value.startswith("#") else value
    if len(digits) != 6:
        raise ValueError(f"color must be 6 hex digits (e.g. ff6600), got {digits!r}")
    try:
        r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"invalid hex in color: {digits!r}") from None
    return (r, g, b, 255)


def parse_resolution(value: str) -> Tuple[int, int]:
    """Parse ``WIDTHxHEIGHT`` into a (width, height) tuple."""
    parts = value.split("x")
    if len(parts) != 2:
        raise ValueError("resolution must be WIDTHxHEIGHT (e.g. 1920x1080)")
    try:
        width = int(parts[0].strip())
    except ValueError:
        raise ValueError(f"invalid width: {parts[0].strip()!r}") from None
    try:
        height = int(parts[1].strip())
    except ValueError:
        raise ValueError(f"invalid height: {parts[1].strip()!r}") from None
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    return width, height
