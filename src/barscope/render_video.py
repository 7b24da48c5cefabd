"""
Video rendering script for spectrum-bar visualization.

Processes audio through the analysis pipeline and renders
an MP4 video with synchronized bars.
"""

import argparse
import logging
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Callable, Optional

from barscope.config import (
    DEFAULT_BARS,
    DEFAULT_FPS,
    DEFAULT_SPECTRUM_HEIGHT,
    AnalysisConfig,
    RenderConfig,
    parse_hex_color,
    parse_resolution,
)
from barscope.errors import BarscopeError

logger = logging.getLogger(__name__)


def render_video(
    audio_path: Path,
    output_path: Path,
    width: int = 1920,
    height: int = 1080,
    fps: int = DEFAULT_FPS,
    bars: int = DEFAULT_BARS,
    spectrum_height: int = DEFAULT_SPECTRUM_HEIGHT,
    spectrum_y_from_bottom: int = 0,
    spectrum_width: Optional[int] = None,
    bar_color: tuple = (0, 0, 0, 255),
    bg_color: tuple = (255, 255, 255, 255),
    bg_image: Optional[Path] = None,
    max_duration: Optional[float] = None,
    progress_callback: Optional[Callable[[int, str], None]] = None,
):
    """
    Render spectrum video from audio file.

    Renders frames to temp directory then combines with ffmpeg.

    Args:
        audio_path: Path to input audio file.
        output_path: Path for output MP4 file.
        width: Video width in pixels.
        height: Video height in pixels.
        fps: Frames per second.
        bars: Number of spectrum bars.
        spectrum_height: Height of the spectrum band in pixels.
        spectrum_y_from_bottom: Gap between the frame bottom and the band.
        spectrum_width: Width of the centred bar strip (None for full width).
        bar_color: Bar RGBA colour.
        bg_color: Background RGBA colour.
        bg_image: Optional background image, resized to the frame.
        max_duration: Maximum duration in seconds (None for full audio).
        progress_callback: Optional callback(progress: int, message: str) for progress updates.
    """
    from barscope.io.encoder import check_ffmpeg, encode_video
    from barscope.io.sinks import PngSequenceSink, WavAudioSink
    from barscope.pipeline import SpectrumPipeline

    def report_progress(pct: int, msg: str):
        """
        Report progress to both stdout (for CLI users) and any provided
        callback (for programmatic callers).
        """
        bar_width = 30
        pct_clamped = max(0, min(100, int(pct)))
        filled = int(bar_width * (pct_clamped / 100.0))
        bar = "[" + "#" * filled + "-" * (bar_width - filled) + "]"

        if sys.stdout.isatty():
            sys.stdout.write(f"\r{bar} {pct_clamped:3d}%  {msg:60.60}")
            sys.stdout.flush()
            if pct_clamped >= 100:
                sys.stdout.write("\n")
        else:
            print(f"{pct_clamped:3d}% {msg}", flush=True)

        if progress_callback:
            progress_callback(pct_clamped, msg)

    check_ffmpeg()

    pipeline = SpectrumPipeline(
        analysis=AnalysisConfig(fps=fps, bars=bars),
        render=RenderConfig(
            width=width,
            height=height,
            spectrum_height=spectrum_height,
            spectrum_y_from_bottom=spectrum_y_from_bottom,
            spectrum_width=spectrum_width,
            bar_color=bar_color,
            background_color=bg_color,
            background_image=bg_image,
        ),
        max_duration=max_duration,
    )

    report_progress(0, f"Decoding audio: {audio_path}")
    audio = pipeline.decode(audio_path)
    report_progress(5, f"Decoded {audio.n_samples} samples at {audio.sample_rate} Hz")

    temp_dir = Path(tempfile.mkdtemp(prefix="barscope_"))
    try:
        frame_sink = PngSequenceSink(temp_dir / "frames")
        wav_path = temp_dir / "audio.wav"

        def on_frame(current: int, total: int):
            if current % 100 == 0 or current == total:
                pct = 10 + int(current / total * 70)
                report_progress(pct, f"Rendering frame {current}/{total}")

        report_progress(8, "Computing spectrum...")
        result = pipeline.run(
            audio,
            frame_sink,
            audio_sink=WavAudioSink(wav_path),
            progress_callback=on_frame,
        )

        report_progress(82, "Encoding video...")

        def on_encode(current: int, total: int):
            pct = 82 + int(current / max(total, 1) * 17)
            report_progress(pct, f"Encoding frame {current}/{total}")

        encode_video(
            frame_sink.pattern,
            wav_path,
            output_path,
            fps=fps,
            total_frames=result.n_frames,
            progress_callback=on_encode,
        )

        file_size_mb = output_path.stat().st_size / 1024 / 1024
        report_progress(100, f"Complete! {file_size_mb:.1f} MB")
        return result

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


def _resolution(value: str):
    try:
        return parse_resolution(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _color(value: str):
    try:
        return parse_hex_color(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="barscope",
        description="Generate an audio spectrum video (MP4) from an audio file",
    )

    parser.add_argument("audio", type=Path, help="Input audio file (mp3, wav, flac)")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output MP4 file (default: <audio>_spectrum.mp4)",
    )
    parser.add_argument(
        "--resolution",
        type=_resolution,
        default=None,
        help="Resolution WIDTHxHEIGHT, overrides --width/--height",
    )
    parser.add_argument("--width", type=int, default=1920, help="Video width (default: 1920)")
    parser.add_argument("--height", type=int, default=1080, help="Video height (default: 1080)")
    parser.add_argument(
        "-f", "--fps",
        type=int,
        default=DEFAULT_FPS,
        help=f"Frames per second (default: {DEFAULT_FPS})",
    )
    parser.add_argument(
        "--bars",
        type=int,
        default=DEFAULT_BARS,
        help=f"Number of spectrum bars (default: {DEFAULT_BARS})",
    )
    parser.add_argument(
        "--spectrum-height",
        type=int,
        default=DEFAULT_SPECTRUM_HEIGHT,
        help=f"Spectrum band height in pixels (default: {DEFAULT_SPECTRUM_HEIGHT})",
    )
    parser.add_argument(
        "--spectrum-y-from-bottom",
        type=int,
        default=0,
        help="Distance from frame bottom to the spectrum band (default: 0)",
    )
    parser.add_argument(
        "--spectrum-width",
        type=int,
        default=None,
        help="Width of the centred bar strip (default: full frame width)",
    )
    parser.add_argument(
        "--bar-color",
        type=_color,
        default=parse_hex_color("000000"),
        help="Bar colour as hex RGB (default: 000000)",
    )
    parser.add_argument(
        "--bg-color",
        type=_color,
        default=parse_hex_color("ffffff"),
        help="Background colour as hex RGB (default: ffffff)",
    )
    parser.add_argument(
        "--bg-image",
        type=Path,
        default=None,
        help="Background image, resized to the video size; overrides --bg-color",
    )
    parser.add_argument(
        "--max-duration",
        type=float,
        default=None,
        help="Only render the first N seconds",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv=None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)

    width, height = args.resolution or (args.width, args.height)

    output = args.output
    if output is None:
        output = args.audio.with_name(f"{args.audio.stem}_spectrum.mp4")

    try:
        render_video(
            audio_path=args.audio,
            output_path=output,
            width=width,
            height=height,
            fps=args.fps,
            bars=args.bars,
            spectrum_height=args.spectrum_height,
            spectrum_y_from_bottom=args.spectrum_y_from_bottom,
            spectrum_width=args.spectrum_width,
            bar_color=args.bar_color,
            bg_color=args.bg_color,
            bg_image=args.bg_image,
            max_duration=args.max_duration,
        )
    except BarscopeError as exc:
        logger.debug("Render failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
