"""Thin CLI entry point: runs one conversion or serves the HTTP API."""

import argparse
import asyncio
import logging
import os
import shutil
import sys
from pathlib import Path

from dotenv import load_dotenv

from giftrim import ffutil
from giftrim.engine import ConversionRequest, Pipeline, PipelineContext
from giftrim.errors import ConversionError
from giftrim.settings import Settings, load_settings

DEFAULT_PORT = 3000


def _load(args: argparse.Namespace) -> Settings:
    if args.settings:
        return load_settings(args.settings)
    return Settings.from_env()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="giftrim",
        description="giftrim: turn a trimmed video segment into a captioned GIF.",
    )
    parser.add_argument("--settings", "-s", type=Path, help="Path to a JSON settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    conv = sub.add_parser("convert", help="Convert a video segment to a GIF")
    conv.add_argument("video", type=str, help="Input video file or http(s) URL")
    conv.add_argument("--start", type=float, default=0.0, help="Segment start (seconds)")
    conv.add_argument("--end", type=float, required=True, help="Segment end (seconds)")
    conv.add_argument("--subtitles", action="store_true", help="Burn in transcribed subtitles")
    conv.add_argument("--output", "-o", type=Path, help="Copy the GIF to this path")

    serve = sub.add_parser("serve", help="Launch the HTTP API")
    serve.add_argument(
        "--port", type=int, default=None, help="Port to listen on (default: $PORT or 3000)"
    )
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        ffutil.check_ffmpeg()
    except ffutil.FFmpegNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    settings = _load(args)

    if args.command == "serve":
        port = args.port or int(os.getenv("PORT", DEFAULT_PORT))
        from giftrim.web import create_app
        app = create_app(settings)
        print(f"giftrim API: http://{args.host}:{port}")
        app.run(host=args.host, port=port, debug=settings.is_development, threaded=True)
        return

    pipeline = Pipeline(PipelineContext.from_settings(settings, allow_local_paths=True))
    request = ConversionRequest(
        start=args.start,
        end=args.end,
        reference=args.video,
        subtitles=args.subtitles,
    )

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        result = asyncio.run(pipeline.convert(request, on_progress=on_progress))
    except ConversionError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    gif_path = result.gif_path
    if args.output:
        shutil.copy2(gif_path, args.output)
        gif_path = args.output

    print()
    print(f"Done! Output: {gif_path}")
    print(f"  Segment: {result.metadata.start_time:.2f}s -> {result.metadata.end_time:.2f}s "
          f"({result.metadata.duration:.2f}s)")
    if result.transcript:
        print(f"  Transcript: {result.transcript}")
    elif args.subtitles:
        print("  Transcript: (none)")
