"""
Audio decoding module.

Loads a compressed or PCM audio file at its native sample rate and
reduces it to a single mono channel by per-sample channel averaging.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from barscope.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedAudio:
    """Container for a decoded mono PCM buffer."""

    samples: np.ndarray
    sample_rate: int

    @property
    def n_samples(self) -> int:
        """Total number of mono samples."""
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Clip length in seconds."""
        return self.n_samples / self.sample_rate

    def truncated(self, max_duration: float) -> "DecodedAudio":
        """
        Return a buffer holding at most *max_duration* seconds.

        Raises:
            DecodeError: If *max_duration* is not positive.
        """
        if not max_duration > 0:
            raise DecodeError(f"max duration must be positive, got {max_duration}")
        n = int(max_duration * self.sample_rate)
        if n >= self.n_samples:
            return self
        return AudioDecoder.from_array(self.samples[:n], self.sample_rate)


class AudioDecoder:
    """
    Decodes audio files into mono float32 PCM.

    Sample rate and channel count are discovered from the file; nothing
    is resampled.
    """

    @staticmethod
    def downmix(y: np.ndarray) -> np.ndarray:
        """
        Average all channels at each sample index.

        Args:
            y: Either a 1-D mono signal or a (channels, n_samples) array.

        Returns:
            1-D float32 mono signal.
        """
        y = np.asarray(y, dtype=np.float32)
        if y.ndim == 1:
            return y
        if y.ndim != 2:
            raise DecodeError(f"expected 1-D or (channels, samples) audio, got shape {y.shape}")
        return y.mean(axis=0, dtype=np.float64).astype(np.float32)

    @classmethod
    def from_array(
        cls,
        y: np.ndarray,
        sample_rate: int,
        source: Union[str, Path, None] = None,
    ) -> DecodedAudio:
        """
        Build a read-only mono buffer from in-memory samples.

        Raises:
            DecodeError: If the sample rate is not positive or no samples remain.
        """
        if sample_rate <= 0:
            raise DecodeError(f"invalid sample rate {sample_rate}", source)
        mono = np.array(cls.downmix(y), dtype=np.float32, copy=True)
        if mono.size == 0:
            raise DecodeError("no decodable samples", source)
        mono.setflags(write=False)
        return DecodedAudio(samples=mono, sample_rate=int(sample_rate))

    def decode_file(self, audio_path: Union[str, Path]) -> DecodedAudio:
        """
        Load and downmix an audio file.

        Args:
            audio_path: Path to audio file (wav, flac, ogg, mp3).

        Returns:
            DecodedAudio at the file's native sample rate.

        Raises:
            DecodeError: If the file is missing, unreadable, or empty.
        """
        path = Path(audio_path)
        if not path.is_file():
            raise DecodeError("audio file not found", path)

        try:
            y, sr = librosa.load(path, sr=None, mono=False)
        except Exception as exc:
            raise DecodeError(f"could not decode audio: {exc}", path) from exc

        channels = 1 if y.ndim == 1 else y.shape[0]
        audio = self.from_array(y, sr, source=path)
        logger.info(
            "Decoded %d samples at %d Hz (%d channel(s)) from %s",
            audio.n_samples, audio.sample_rate, channels, path,
        )
        return audio
