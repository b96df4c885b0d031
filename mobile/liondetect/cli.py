"""Command line front-end for streaming and single-clip detection."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .app import LionDetectApp
from .audio.capture import FileCapture
from .errors import CaptureError, InferenceError
from .models import DetectionResult


def _print_alert(result: DetectionResult) -> None:
    print(f"AI audio detected! AI confidence: {result.ai_percent:g}%", flush=True)


def _print_result(result: DetectionResult) -> None:
    label = "AI Generated" if result.is_ai else "Real Audio"
    print(f"{label} | AI: {result.ai_percent:g}% | Real: {result.real_percent:g}%")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="liondetect", description="Detect AI-generated voices in audio.")
    parser.add_argument("--data-dir", type=Path, default=None, help="Settings and history directory.")
    parser.add_argument("--server-url", default=None, help="Gradio API base URL (saved to settings).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    stream = sub.add_parser("stream", help="Classify live audio in short chunks.")
    stream.add_argument("--file", type=Path, default=None, help="Replay an audio file instead of the microphone.")
    stream.add_argument("--seconds", type=float, default=None, help="Stop after this many seconds.")

    classify = sub.add_parser("classify", help="Classify a whole audio file.")
    classify.add_argument("path", type=Path)

    record = sub.add_parser("record", help="Record a clip from the microphone and classify it.")
    record.add_argument("--seconds", type=float, default=None)

    sub.add_parser("history", help="Show recent results.")
    return parser


def _run_stream(app: LionDetectApp, file: Optional[Path], seconds: Optional[float]) -> int:
    capture = FileCapture(file) if file else None
    session = app.start_streaming(capture)
    last_status = ""
    started = time.monotonic()
    try:
        while session.error is None:
            if seconds is not None and time.monotonic() - started >= seconds:
                break
            if capture is not None and capture.finished.is_set() and session.scheduler.in_flight is None:
                break
            if session.status != last_status:
                last_status = session.status
                print(last_status, flush=True)
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        app.stop_streaming()
    if session.error is not None:
        print(f"Capture failed: {session.error}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = LionDetectApp(args.data_dir, on_alert=_print_alert)
    if args.server_url:
        app.settings_store.update(server_url=args.server_url.strip())
    try:
        if args.command == "stream":
            return _run_stream(app, args.file, args.seconds)
        if args.command == "classify":
            _print_result(app.classify_clip(args.path))
            return 0
        if args.command == "record":
            _print_result(app.record_clip(args.seconds))
            return 0
        for result in app.history.list():
            stamp = result.timestamp.strftime("%Y-%m-%d %H:%M:%S")
            print(f"{stamp} #{result.chunk_id} AI {result.ai_percent:g}% Real {result.real_percent:g}%")
        return 0
    except CaptureError as exc:
        print(f"Capture error: {exc}", file=sys.stderr)
        return 1
    except InferenceError as exc:
        print(f"Failed to process audio: {exc}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    raise SystemExit(main())
