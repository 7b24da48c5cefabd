"""Frame/audio sinks and video encoding."""
