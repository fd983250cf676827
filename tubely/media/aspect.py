from __future__ import annotations

import enum
from typing import Sequence

from .ffprobe import MediaProbeError, StreamInfo


class AspectClass(str, enum.Enum):
    landscape = "landscape"
    portrait = "portrait"
    other = "other"


_RATIO_TO_CLASS = {
    "16:9": AspectClass.landscape,
    "9:16": AspectClass.portrait,
}


def classify_aspect_ratio(width: int, height: int) -> str:
    """Return ``"16:9"``, ``"9:16"`` or ``"other"`` using exact integer arithmetic."""
    if width == 16 * height // 9:
        return "16:9"
    if height == 16 * width // 9:
        return "9:16"
    return "other"


def aspect_class_for(ratio: str) -> AspectClass:
    return _RATIO_TO_CLASS.get(ratio, AspectClass.other)


def classify_streams(streams: Sequence[StreamInfo]) -> AspectClass:
    """Classify a probed file by its first reported stream."""
    if not streams:
        raise MediaProbeError("no video streams found")
    first = streams[0]
    # An audio-only first stream would otherwise read as 0x0 and pass the 16:9 test.
    if not first.width or not first.height:
        raise MediaProbeError(f"stream {first.index} reports no frame dimensions")
    return aspect_class_for(classify_aspect_ratio(first.width, first.height))


__all__ = ["AspectClass", "classify_aspect_ratio", "aspect_class_for", "classify_streams"]
