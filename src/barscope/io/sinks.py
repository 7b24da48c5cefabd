"""
Frame and audio sinks.

Sinks receive rendered frames (by index) and the decoded PCM buffer from
the pipeline and persist them in a form the video encoder can read.
"""

import hashlib
import logging
from pathlib import Path
from typing import Dict, Protocol, Union

import numpy as np
import soundfile as sf

from barscope.visualizers.bars import BarRenderer

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.png"


class FrameSink(Protocol):
    """Consumer of rendered frames in index order."""

    def write(self, index: int, frame: np.ndarray) -> None: ...

    def close(self) -> None: ...


class AudioSink(Protocol):
    """Consumer of the decoded mono PCM buffer."""

    def write(self, samples: np.ndarray, sample_rate: int) -> None: ...


class PngSequenceSink:
    """Writes each frame to ``<directory>/frame_%06d.png``."""

    def __init__(self, directory: Union[str, Path], compress_level: int = 1):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.compress_level = compress_level
        self.frames_written = 0

    @property
    def pattern(self) -> str:
        """printf-style path pattern understood by ffmpeg's image2 demuxer."""
        return str(self.directory / FRAME_PATTERN)

    def path_for(self, index: int) -> Path:
        return self.directory / (FRAME_PATTERN % index)

    def write(self, index: int, frame: np.ndarray) -> None:
        image = BarRenderer.to_image(frame)
        image.save(self.path_for(index), "PNG", compress_level=self.compress_level)
        self.frames_written += 1

    def close(self) -> None:
        logger.debug("Wrote %d frames to %s", self.frames_written, self.directory)


class MemoryFrameSink:
    """
    Keeps a SHA-256 digest and the shape of each frame.

    Useful for checking output without holding every frame in memory.
    """

    def __init__(self):
        self.digests: Dict[int, str] = {}
        self.shapes: Dict[int, tuple] = {}
        self.closed = False

    def write(self, index: int, frame: np.ndarray) -> None:
        self.digests[index] = hashlib.sha256(frame.tobytes()).hexdigest()
        self.shapes[index] = frame.shape

    def close(self) -> None:
        self.closed = True


class WavAudioSink:
    """Writes mono samples as a 16-bit PCM WAV file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def write(self, samples: np.ndarray, sample_rate: int) -> None:
        clipped = np.clip(samples, -1.0, 1.0)
        sf.write(self.path, clipped, sample_rate, subtype="PCM_16")
        logger.debug("Wrote %d samples at %d Hz to %s", len(clipped), sample_rate, self.path)
