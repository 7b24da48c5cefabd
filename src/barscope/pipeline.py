"""
End-to-end spectrum pipeline.

Decode once, analyse the whole clip once, then render and hand off one
frame at a time.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Tuple, Union

import numpy as np

from barscope.config import AnalysisConfig, RenderConfig
from barscope.core.decoder import AudioDecoder, DecodedAudio
from barscope.core.spectrum import SpectrumAnalyzer, SpectrumResult
from barscope.io.sinks import AudioSink, FrameSink
from barscope.visualizers.bars import BarRenderer

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Summary of a completed run."""

    n_frames: int
    duration: float
    sample_rate: int
    global_max: float


class SpectrumPipeline:
    """
    Runs AudioDecoder -> SpectrumAnalyzer -> BarRenderer.

    Renderer and analyzer are built, and bar geometry checked, up front so
    a bad setting fails before any audio is decoded.
    """

    def __init__(
        self,
        analysis: Optional[AnalysisConfig] = None,
        render: Optional[RenderConfig] = None,
        max_duration: Optional[float] = None,
    ):
        self.decoder = AudioDecoder()
        self.analyzer = SpectrumAnalyzer(analysis)
        self.renderer = BarRenderer(render)
        self.renderer.bar_geometry(self.analyzer.config.bars)
        self.max_duration = max_duration

    def decode(self, audio_path: Union[str, Path]) -> DecodedAudio:
        audio = self.decoder.decode_file(audio_path)
        if self.max_duration is not None:
            audio = audio.truncated(self.max_duration)
        return audio

    def iter_frames(
        self,
        result: SpectrumResult,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Iterator[Tuple[int, np.ndarray]]:
        """Render frames lazily in index order."""
        return self.renderer.render_result(result, progress_callback)

    def run(
        self,
        audio: DecodedAudio,
        frame_sink: FrameSink,
        audio_sink: Optional[AudioSink] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> PipelineResult:
        """
        Analyse an already decoded buffer and render every frame into *frame_sink*.

        Args:
            audio: Decoded mono buffer.
            frame_sink: Receives (index, frame) for every output frame.
            audio_sink: Optional receiver of the PCM buffer for muxing.
            progress_callback: Optional callback(current, total) per rendered frame.
        """
        result = self.analyzer.analyze(audio)

        if audio_sink is not None:
            audio_sink.write(audio.samples, audio.sample_rate)

        for index, frame in self.iter_frames(result, progress_callback):
            frame_sink.write(index, frame)
        frame_sink.close()

        logger.info("Rendered %d frames", result.n_frames)
        return PipelineResult(
            n_frames=result.n_frames,
            duration=result.duration,
            sample_rate=result.sample_rate,
            global_max=result.global_max,
        )

    def process(
        self,
        audio_path: Union[str, Path],
        frame_sink: FrameSink,
        audio_sink: Optional[AudioSink] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> PipelineResult:
        """Decode *audio_path* and run the full pipeline on it."""
        return self.run(self.decode(audio_path), frame_sink, audio_sink, progress_callback)
