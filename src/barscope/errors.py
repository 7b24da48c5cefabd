"""
Error types raised by the spectrum video pipeline.

Every error names the stage it came from and, where known, the input
that triggered it.  All of them are fatal: the pipeline never emits a
truncated frame sequence.
"""

from pathlib import Path
from typing import Optional, Union


class BarscopeError(Exception):
    """Base class for all pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, source: Optional[Union[str, Path]] = None):
        self.source = str(source) if source is not None else None
        if self.source:
            message = f"{message} (input: {self.source})"
        super().__init__(f"[{self.stage}] {message}")


class DecodeError(BarscopeError):
    """Audio is missing, malformed, unsupported, or empty."""

    stage = "decode"


class AnalysisError(BarscopeError):
    """Spectrum analysis configuration is invalid."""

    stage = "analyze"


class RenderError(BarscopeError):
    """Output dimensions or bar geometry are invalid."""

    stage = "render"


class EncodeError(BarscopeError):
    """The external video encoder is unavailable or failed."""

    stage = "encode"
