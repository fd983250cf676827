from __future__ import annotations

import subprocess
from pathlib import Path

PROCESSING_SUFFIX = ".processing"


class MediaTranscodeError(RuntimeError):
    """Raised when ffmpeg fails to rewrite a file for progressive playback."""


def faststart_output_path(source: Path) -> Path:
    return source.with_name(source.name + PROCESSING_SUFFIX)


def rewrite_for_faststart(source: Path, *, timeout: float | None = None) -> Path:
    """Copy ``source`` into a sibling MP4 whose moov atom sits at the front.

    Streams are copied, not re-encoded. The partially written output is
    removed when ffmpeg fails.
    """
    output_path = faststart_output_path(source)
    command = [
        "ffmpeg",
        "-nostdin",
        "-v",
        "error",
        "-i",
        str(source),
        "-c",
        "copy",
        "-movflags",
        "faststart",
        "-f",
        "mp4",
        "-y",
        str(output_path),
    ]
    try:
        subprocess.run(command, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, timeout=timeout)
    except FileNotFoundError as exc:
        raise MediaTranscodeError("ffmpeg binary not found") from exc
    except OSError as exc:
        raise MediaTranscodeError(f"ffmpeg could not be started: {exc}") from exc
    except subprocess.TimeoutExpired as exc:
        output_path.unlink(missing_ok=True)
        raise MediaTranscodeError(f"ffmpeg timed out after {timeout}s") from exc
    except subprocess.CalledProcessError as exc:
        output_path.unlink(missing_ok=True)
        stderr = (exc.stderr or "").strip()
        raise MediaTranscodeError(f"ffmpeg exited with {exc.returncode}: {stderr}") from exc

    if not output_path.exists():
        raise MediaTranscodeError("ffmpeg reported success but wrote no output")
    return output_path


__all__ = ["MediaTranscodeError", "PROCESSING_SUFFIX", "faststart_output_path", "rewrite_for_faststart"]
