"""Shared synthetic-audio fixtures."""

import numpy as np
import pytest
import soundfile as sf

TEST_SR = 44100


def sine(freq: float, duration: float = 1.0, sr: int = TEST_SR, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(sr * duration)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


@pytest.fixture
def pure_sine():
    """One second of a 1 kHz tone at 44.1 kHz."""
    return sine(1000.0), TEST_SR


@pytest.fixture
def mixed_signal():
    """Bass tone plus a quieter high tone, two seconds."""
    y = sine(80.0, duration=2.0, amplitude=0.4) + sine(6000.0, duration=2.0, amplitude=0.2)
    return y, TEST_SR


@pytest.fixture
def silence():
    return np.zeros(TEST_SR // 2, dtype=np.float32), TEST_SR


@pytest.fixture
def wav_file(tmp_path):
    """Factory writing samples to a WAV file and returning its path."""

    def _write(samples: np.ndarray, sr: int = TEST_SR, name: str = "clip.wav", subtype: str = "FLOAT"):
        path = tmp_path / name
        # soundfile expects (n_samples, channels)
        data = samples.T if samples.ndim == 2 else samples
        sf.write(path, data, sr, subtype=subtype)
        return path

    return _write
