"""
ffmpeg encoding.

Combines a PNG frame sequence and a WAV track into an H.264/AAC MP4 and
follows ffmpeg's ``frame=`` progress output on stderr.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Union

from barscope.errors import EncodeError

logger = logging.getLogger(__name__)

_FRAME_RE = re.compile(rb"frame=\s*(\d+)")
_STDERR_TAIL = 4096


def check_ffmpeg(executable: str = "ffmpeg") -> None:
    """
    Make sure ffmpeg can be run.

    Raises:
        EncodeError: If the executable is missing or fails to start.
    """
    try:
        subprocess.run(
            [executable, "-version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        raise EncodeError(
            f"{executable} not found. Please install ffmpeg and add it to your PATH."
        ) from exc


def build_ffmpeg_command(
    frame_pattern: str,
    audio_path: Union[str, Path],
    output_path: Union[str, Path],
    fps: float,
    executable: str = "ffmpeg",
) -> List[str]:
    """Command line that muxes the frame sequence with the audio track."""
    return [
        executable,
        "-y",
        "-framerate", str(fps),
        "-i", frame_pattern,
        "-i", str(audio_path),
        "-c:v", "libx264",
        "-c:a", "aac",
        "-shortest",
        "-pix_fmt", "yuv420p",
        str(output_path),
    ]


def parse_progress(text: bytes) -> Optional[int]:
    """Return the last ``frame=`` count reported in a chunk of ffmpeg stderr."""
    matches = _FRAME_RE.findall(text)
    if not matches:
        return None
    return int(matches[-1])


def encode_video(
    frame_pattern: str,
    audio_path: Union[str, Path],
    output_path: Union[str, Path],
    fps: float,
    total_frames: int,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    executable: str = "ffmpeg",
) -> None:
    """
    Run ffmpeg and report encoded-frame progress.

    Args:
        frame_pattern: printf-style PNG path pattern.
        audio_path: WAV file to mux in.
        output_path: Destination MP4.
        fps: Frame rate of the image sequence.
        total_frames: Number of frames, used to clamp progress.
        progress_callback: Optional callback(encoded, total).

    Raises:
        EncodeError: If ffmpeg cannot start or exits non-zero.
    """
    cmd = build_ffmpeg_command(frame_pattern, audio_path, output_path, fps, executable)
    logger.debug("Running %s", " ".join(cmd))

    try:
        proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
    except OSError as exc:
        raise EncodeError(f"failed to start {executable}: {exc}") from exc

    tail = b""
    last = 0
    with proc:
        while True:
            chunk = proc.stderr.read1(512)
            if not chunk:
                break
            tail = (tail + chunk)[-_STDERR_TAIL:]
            encoded = parse_progress(tail)
            if encoded is not None:
                encoded = min(encoded, total_frames)
                if encoded > last:
                    last = encoded
                    if progress_callback:
                        progress_callback(encoded, total_frames)
        returncode = proc.wait()

    if returncode != 0:
        message = tail.decode("utf-8", errors="replace").strip()
        raise EncodeError(f"ffmpeg exited with status {returncode}: {message}", output_path)

    logger.info("Encoded %d frames to %s", last or total_frames, output_path)
