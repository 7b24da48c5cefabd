"""Visualization modules for audio-reactive graphics."""

from barscope.visualizers.bars import BarRenderer

__all__ = ["BarRenderer"]
