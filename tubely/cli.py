from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .media import (
    MediaProbeError,
    MediaTranscodeError,
    binary_available,
    classify_aspect_ratio,
    classify_streams,
    parse_streams,
    rewrite_for_faststart,
    run_ffprobe,
)

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tubely media developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe dependencies")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Run ffprobe and print streams with the aspect class")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for ffprobe")
    probe_parser.set_defaults(func=_cmd_probe)

    faststart_parser = subparsers.add_parser("faststart", help="Rewrite an MP4 with the moov atom at the front")
    faststart_parser.add_argument("--file", required=True, help="Path to the source MP4")
    faststart_parser.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for ffmpeg")
    faststart_parser.set_defaults(func=_cmd_faststart)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=None, help="Defaults to TUBELY_PORT")
    serve_parser.set_defaults(func=_cmd_serve)
    return parser


def _cmd_probe(args: argparse.Namespace) -> None:
    """Print the probed streams and how the upload pipeline would classify the file."""
    media_path = _existing_file(args.file)
    try:
        streams = parse_streams(run_ffprobe(media_path, timeout=args.timeout))
        aspect = classify_streams(streams)
    except MediaProbeError as exc:
        console.print(f"[red]ffprobe failed:[/] {exc}")
        sys.exit(3)

    first = streams[0]
    console.print_json(
        data={
            "file": str(media_path),
            "aspect_ratio": classify_aspect_ratio(first.width or 0, first.height or 0),
            "aspect_class": aspect.value,
            "streams": [
                {
                    "index": stream.index,
                    "type": stream.type,
                    "codec": stream.codec,
                    "width": stream.width,
                    "height": stream.height,
                }
                for stream in streams
            ],
        }
    )


def _cmd_faststart(args: argparse.Namespace) -> None:
    media_path = _existing_file(args.file)
    try:
        output = rewrite_for_faststart(media_path, timeout=args.timeout)
    except MediaTranscodeError as exc:
        console.print(f"[red]ffmpeg failed:[/] {exc}")
        sys.exit(3)
    console.print(f"[green]Fast-start copy written to {output}[/]", soft_wrap=True)


def _cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    from .core.config import get_settings

    port = args.port or get_settings().port
    uvicorn.run("tubely.main:create_app", factory=True, host=args.host, port=port)


def _existing_file(raw: str) -> Path:
    media_path = Path(raw).expanduser().resolve()
    if not media_path.is_file():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)
    return media_path


def _run_environment_check() -> None:
    """Check for the presence of required external dependencies."""
    results = {
        "ffmpeg": binary_available(["ffmpeg", "-version"]),
        "ffprobe": binary_available(["ffprobe", "-version"]),
    }

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg (which ships ffprobe).[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
