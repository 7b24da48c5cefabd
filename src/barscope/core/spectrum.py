"""
Per-frame spectrum analysis.

Computes one log-frequency, log-amplitude bar spectrum per output video
frame, plus the clip-wide maximum used to normalize every frame the same
way.

Each video frame i is analysed with an FFT window centred on its
timestamp (i / fps seconds).  Windows that run past either end of the
clip are zero padded.  FFT bins are folded onto bars whose edges are
spaced geometrically between ``f_min`` and Nyquist, taking the maximum
bin magnitude inside each bar, then compressed with ``log1p``.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from scipy import signal as scipy_signal

from barscope.config import AnalysisConfig
from barscope.core.decoder import DecodedAudio
from barscope.errors import AnalysisError

logger = logging.getLogger(__name__)

# Guards ceil() against float noise such as 1.0000000002 * 30
_FRAME_COUNT_EPSILON = 1e-9


@dataclass
class SpectrumResult:
    """All frames' bar spectra plus the shared normalization constant."""

    spectra: np.ndarray  # (n_frames, bars) float32, increasing time order
    global_max: float
    fps: float
    sample_rate: int
    duration: float

    @property
    def n_frames(self) -> int:
        return self.spectra.shape[0]

    @property
    def bars(self) -> int:
        return self.spectra.shape[1]


class SpectrumAnalyzer:
    """
    Produces the magnitude spectrum of every video frame in a clip.

    The whole clip is analysed before anything is rendered so that bar
    heights share one normalization constant.
    """

    def __init__(self, config: AnalysisConfig | None = None):
        """
        Initialize the analyzer.

        Args:
            config: Analysis settings (frame rate, bar count, FFT size, overlap).

        Raises:
            AnalysisError: If any setting is out of range.
        """
        self.config = config or AnalysisConfig()
        self._validate()
        self._window = scipy_signal.get_window("hann", self.config.fft_size).astype(np.float32)

    def _validate(self) -> None:
        cfg = self.config
        if cfg.bars <= 0:
            raise AnalysisError(f"bar count must be positive, got {cfg.bars}")
        if cfg.fft_size <= 0:
            raise AnalysisError(f"FFT size must be positive, got {cfg.fft_size}")
        if not cfg.fps > 0:
            raise AnalysisError(f"frame rate must be positive, got {cfg.fps}")
        if not 0.0 <= cfg.overlap < 1.0:
            raise AnalysisError(f"overlap must be in [0, 1), got {cfg.overlap}")
        if cfg.f_min is not None and not cfg.f_min > 0:
            raise AnalysisError(f"f_min must be positive, got {cfg.f_min}")
        if cfg.block_size <= 0:
            raise AnalysisError(f"block size must be positive, got {cfg.block_size}")

    # ------------------------------------------------------------------
    # Frame timing
    # ------------------------------------------------------------------

    def n_frames(self, duration: float) -> int:
        """Number of video frames covering *duration* seconds."""
        return max(0, math.ceil(duration * self.config.fps - _FRAME_COUNT_EPSILON))

    def hop_length(self, sample_rate: int) -> float:
        """Samples between consecutive frame centres."""
        return sample_rate / self.config.fps

    def effective_overlap(self, sample_rate: int) -> float:
        """Fraction of each window shared with the next frame's window."""
        return max(0.0, 1.0 - self.hop_length(sample_rate) / self.config.fft_size)

    # ------------------------------------------------------------------
    # Frequency mapping
    # ------------------------------------------------------------------

    def bin_frequencies(self, sample_rate: int) -> np.ndarray:
        """Centre frequency of each non-negative FFT bin."""
        n_bins = self.config.fft_size // 2 + 1
        return np.arange(n_bins) * (sample_rate / self.config.fft_size)

    def bar_edges(self, sample_rate: int) -> np.ndarray:
        """
        Geometrically spaced bar boundaries from f_min to Nyquist.

        Returns:
            Strictly increasing array of ``bars + 1`` frequencies in Hz;
            bar k covers ``[edges[k], edges[k + 1])``.
        """
        f_max = sample_rate / 2.0
        f_min = self.config.f_min or sample_rate / self.config.fft_size
        if f_min >= f_max:
            raise AnalysisError(
                f"f_min ({f_min:.1f} Hz) must be below Nyquist ({f_max:.1f} Hz)"
            )
        bars = self.config.bars
        edges = f_min * (f_max / f_min) ** (np.arange(bars + 1) / bars)
        edges[0] = f_min
        edges[-1] = f_max
        return edges

    def bar_bin_ranges(self, sample_rate: int) -> List[Tuple[int, int]]:
        """
        Half-open FFT bin index range feeding each bar.

        A bar too narrow to contain any bin borrows the single bin closest
        to its geometric centre, so no bar is left permanently empty.
        """
        freqs = self.bin_frequencies(sample_rate)
        edges = self.bar_edges(sample_rate)
        n_bins = len(freqs)

        lo = np.searchsorted(freqs, edges[:-1], side="left")
        hi = np.searchsorted(freqs, edges[1:], side="left")
        # The last bar is closed at Nyquist
        hi[-1] = np.searchsorted(freqs, edges[-1], side="right")

        ranges = []
        bin_width = sample_rate / self.config.fft_size
        for k in range(self.config.bars):
            start, stop = int(lo[k]), int(hi[k])
            if stop <= start:
                centre = math.sqrt(edges[k] * edges[k + 1])
                nearest = min(n_bins - 1, max(0, int(round(centre / bin_width))))
                start, stop = nearest, nearest + 1
            ranges.append((start, stop))
        return ranges

    # ------------------------------------------------------------------
    # FFT stages
    # ------------------------------------------------------------------

    def frame_windows(
        self,
        samples: np.ndarray,
        sample_rate: int,
        start: int,
        stop: int,
    ) -> np.ndarray:
        """
        Hann-tapered analysis windows for frames ``start`` to ``stop - 1``.

        Only the samples under the requested windows are gathered; positions
        before the first or past the last sample read as zero.

        Returns:
            (stop - start, fft_size) float32 array.
        """
        fft_size = self.config.fft_size
        half = fft_size // 2

        centres = np.rint(np.arange(start, stop) * self.hop_length(sample_rate)).astype(np.int64)
        index = (centres - half)[:, None] + np.arange(fft_size)[None, :]
        inside = (index >= 0) & (index < len(samples))

        windows = np.zeros(index.shape, dtype=np.float32)
        windows[inside] = samples[index[inside]]
        return windows * self._window

    @staticmethod
    def frame_magnitudes(windows: np.ndarray) -> np.ndarray:
        """Absolute value of the non-negative-frequency FFT bins."""
        return np.abs(np.fft.rfft(windows, axis=1))

    def aggregate(self, magnitudes: np.ndarray, ranges: List[Tuple[int, int]]) -> np.ndarray:
        """
        Fold FFT bins onto bars and compress the amplitude.

        Each bar takes the maximum magnitude of its bins, then log(1 + x).
        """
        bars = np.empty((magnitudes.shape[0], len(ranges)), dtype=np.float32)
        for k, (start, stop) in enumerate(ranges):
            bars[:, k] = magnitudes[:, start:stop].max(axis=1)
        return np.log1p(bars)

    # ------------------------------------------------------------------
    # Full clip
    # ------------------------------------------------------------------

    def analyze(self, audio: DecodedAudio) -> SpectrumResult:
        """
        Compute every frame's bar spectrum and the clip-wide maximum.

        Args:
            audio: Decoded mono buffer.

        Returns:
            SpectrumResult with one row per video frame.
        """
        sr = audio.sample_rate
        if sr <= 0:
            raise AnalysisError(f"sample rate must be positive, got {sr}")

        ranges = self.bar_bin_ranges(sr)
        n_frames = self.n_frames(audio.duration)

        overlap = self.effective_overlap(sr)
        if overlap < self.config.overlap:
            logger.info(
                "Frame windows overlap by %.0f%% at %.3g fps (configured %.0f%%)",
                overlap * 100, self.config.fps, self.config.overlap * 100,
            )

        spectra = np.zeros((n_frames, self.config.bars), dtype=np.float32)
        block = self.config.block_size
        for start in range(0, n_frames, block):
            stop = min(start + block, n_frames)
            windows = self.frame_windows(audio.samples, sr, start, stop)
            spectra[start:stop] = self.aggregate(self.frame_magnitudes(windows), ranges)
            logger.debug("Analysed frames %d-%d of %d", start, stop - 1, n_frames)

        # Every frame must exist before the maximum is taken
        global_max = float(spectra.max()) if n_frames else 0.0

        logger.info(
            "Computed %d spectrum frames x %d bars, global max %.4f",
            n_frames, self.config.bars, global_max,
        )
        return SpectrumResult(
            spectra=spectra,
            global_max=global_max,
            fps=self.config.fps,
            sample_rate=sr,
            duration=audio.duration,
        )
