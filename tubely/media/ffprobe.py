from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional

StreamType = Literal["video", "audio", "data", "subtitle", "other"]


class MediaProbeError(RuntimeError):
    """Raised when ffprobe cannot be run or its output cannot be understood."""


@dataclass(slots=True, frozen=True)
class StreamInfo:
    """A single stream as reported by ffprobe."""

    index: int
    type: StreamType
    codec: str
    width: Optional[int]
    height: Optional[int]


def run_ffprobe(target: Path, *, timeout: float | None = None) -> Dict[str, Any]:
    """Execute ffprobe against ``target`` and return its parsed JSON output.

    Args:
        target: The media file to inspect.
        timeout: Seconds to wait before the probe is killed.

    Returns:
        The decoded ffprobe document.

    Raises:
        MediaProbeError: If the binary is missing, exits non-zero, times out or
            prints something that is not JSON.
    """
    command = [
        "ffprobe",
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_streams",
        str(target),
    ]
    try:
        proc = subprocess.run(
            command,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise MediaProbeError("ffprobe binary not found") from exc
    except OSError as exc:
        raise MediaProbeError(f"ffprobe could not be started: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        raise MediaProbeError(f"ffprobe timed out after {timeout}s") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise MediaProbeError(f"ffprobe exited with {exc.returncode}: {stderr}") from exc

    try:
        payload = json.loads(proc.stdout)
    except json.JSONDecodeError as exc:
        raise MediaProbeError("ffprobe output is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise MediaProbeError("ffprobe output is not a JSON object")
    return payload


def parse_streams(raw: Dict[str, Any]) -> List[StreamInfo]:
    """Normalise the ``streams`` array of an ffprobe document, preserving order."""
    streams = raw.get("streams") or []
    if not isinstance(streams, list):
        raise MediaProbeError("ffprobe 'streams' is not a list")
    return [_stream_info(position, stream) for position, stream in enumerate(_dicts(streams))]


def _dicts(items: Iterable[Any]) -> Iterable[Dict[str, Any]]:
    for item in items:
        if not isinstance(item, dict):
            raise MediaProbeError("ffprobe stream entry is not an object")
        yield item


def _stream_info(position: int, stream: Dict[str, Any]) -> StreamInfo:
    index = _int_or_none(stream.get("index"))
    return StreamInfo(
        index=position if index is None else index,
        type=_normalise_stream_type(stream.get("codec_type")),
        codec=stream.get("codec_name") or "unknown",
        width=_int_or_none(stream.get("width")),
        height=_int_or_none(stream.get("height")),
    )


def _normalise_stream_type(value: Any) -> StreamType:
    if not isinstance(value, str):
        return "other"
    value_lower = value.lower()
    if value_lower in {"video", "audio", "data", "subtitle"}:
        return value_lower  # type: ignore[return-value]
    return "other"


def _int_or_none(value: Any) -> Optional[int]:
    if value in (None, "N/A", ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = ["MediaProbeError", "StreamInfo", "StreamType", "run_ffprobe", "parse_streams"]
