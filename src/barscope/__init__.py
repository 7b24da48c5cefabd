"""Audio spectrum bar video generator."""

from barscope.core.decoder import AudioDecoder, DecodedAudio
from barscope.core.spectrum import SpectrumAnalyzer, SpectrumResult
from barscope.visualizers.bars import BarRenderer
from barscope.pipeline import SpectrumPipeline

__version__ = "0.1.0"
__all__ = [
    "AudioDecoder",
    "DecodedAudio",
    "SpectrumAnalyzer",
    "SpectrumResult",
    "BarRenderer",
    "SpectrumPipeline",
]
