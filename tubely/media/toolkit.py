from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from tubely.core.config import Settings

from .faststart import rewrite_for_faststart
from .ffprobe import StreamInfo, parse_streams, run_ffprobe


class MediaToolkit(ABC):
    @abstractmethod
    def probe(self, path: Path) -> List[StreamInfo]: ...

    @abstractmethod
    def faststart(self, path: Path) -> Path: ...


class FFmpegToolkit(MediaToolkit):
    """Media inspection and fast-start rewriting backed by the ffprobe/ffmpeg binaries."""

    def __init__(self, *, probe_timeout_s: float | None = None, transcode_timeout_s: float | None = None):
        self.probe_timeout_s = probe_timeout_s
        self.transcode_timeout_s = transcode_timeout_s

    def probe(self, path: Path) -> List[StreamInfo]:
        return parse_streams(run_ffprobe(path, timeout=self.probe_timeout_s))

    def faststart(self, path: Path) -> Path:
        return rewrite_for_faststart(path, timeout=self.transcode_timeout_s)


def get_media_toolkit(settings: Settings) -> MediaToolkit:
    return FFmpegToolkit(
        probe_timeout_s=settings.ffprobe_timeout_s,
        transcode_timeout_s=settings.ffmpeg_timeout_s,
    )


def binary_available(command: list[str]) -> bool:
    try:
        subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True, timeout=10)
    except (OSError, subprocess.SubprocessError):
        return False
    return True


__all__ = ["MediaToolkit", "FFmpegToolkit", "get_media_toolkit", "binary_available"]
