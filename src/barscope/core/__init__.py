"""Core audio processing modules."""

from barscope.core.decoder import AudioDecoder, DecodedAudio
from barscope.core.spectrum import SpectrumAnalyzer, SpectrumResult

__all__ = ["AudioDecoder", "DecodedAudio", "SpectrumAnalyzer", "SpectrumResult"]
