"""Media inspection and container rewriting helpers reused by the API and CLI."""

from tubely.media.aspect import AspectClass, aspect_class_for, classify_aspect_ratio, classify_streams
from tubely.media.faststart import MediaTranscodeError, rewrite_for_faststart
from tubely.media.ffprobe import MediaProbeError, StreamInfo, parse_streams, run_ffprobe
from tubely.media.toolkit import FFmpegToolkit, MediaToolkit, binary_available, get_media_toolkit

__all__ = [
    "AspectClass",
    "aspect_class_for",
    "classify_aspect_ratio",
    "classify_streams",
    "MediaTranscodeError",
    "rewrite_for_faststart",
    "MediaProbeError",
    "StreamInfo",
    "parse_streams",
    "run_ffprobe",
    "FFmpegToolkit",
    "MediaToolkit",
    "binary_available",
    "get_media_toolkit",
]
