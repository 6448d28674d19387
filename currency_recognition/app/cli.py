"""Command-line entry point for bill recognition on images or a live camera."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import cv2

from currency_recognition.adapters.overlay import annotate_frame
from currency_recognition.adapters.sources import CameraSource, ImageFileSource
from currency_recognition.app.factory import build_service
from currency_recognition.app.settings import AppSettings, load_settings
from currency_recognition.core.errors import SourceUnavailableError
from currency_recognition.services.detection_service import DetectionService
from currency_recognition.services.live_loop import LiveDetectionLoop
from currency_recognition.services.session import DetectionMode

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Identify currency bill denominations and announce them.")
    parser.add_argument("--threshold", type=float, default=None, help="Confidence threshold")
    parser.add_argument("--rounds", type=int, default=None, help="Rounds that must agree before confirming")
    parser.add_argument("--no-speech", action="store_true", help="Print results without speaking them")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Run a burst of rounds on one image file")
    detect.add_argument("image", type=str, help="Path to the image of the bill")
    detect.add_argument("--annotate", type=str, default=None, help="Write an annotated copy to this path")

    live = subparsers.add_parser("live", help="Poll the camera and announce confirmed bills")
    live.add_argument("--camera", type=int, default=None, help="Camera device index")
    live.add_argument("--duration", type=float, default=30.0, help="Seconds to keep the live loop running")
    return parser


def setup_logging(settings: AppSettings) -> None:
    if settings.log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=logging.INFO, handlers=[handler])


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.threshold is not None:
        overrides["confidence_threshold"] = args.threshold
    if args.rounds is not None:
        overrides["confirmation_rounds"] = args.rounds
    if args.no_speech:
        overrides["speech_enabled"] = False
    if args.log_format:
        overrides["log_format"] = args.log_format
    if getattr(args, "camera", None) is not None:
        overrides["camera_index"] = args.camera
    return load_settings(**overrides)


async def run_detect(service: DetectionService, image_path: str, annotate: Optional[str]) -> int:
    source = ImageFileSource(image_path)
    try:
        image = source.read()
    except SourceUnavailableError as exc:
        LOGGER.error("%s", exc)
        return 1
    result = await service.run_burst(image, DetectionMode.UPLOAD)
    if result is None:
        return 1
    print(json.dumps({"label": result.label, "result": result.model_dump()}, indent=2))
    if annotate:
        target = Path(annotate).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(target), annotate_frame(image, service.current_session.detections, result))
        LOGGER.info("Annotated image written to %s", target)
    return 0


async def run_live(service: DetectionService, settings: AppSettings, duration: float) -> int:
    camera = CameraSource(settings.camera_index)
    loop = LiveDetectionLoop(service, camera, interval_seconds=settings.live_interval_seconds)
    task = loop.start()
    try:
        await asyncio.wait({task}, timeout=max(duration, 0.0))
    finally:
        await loop.stop()
        camera.close()
    for record in service.history():
        print(f"[{record.confirmed_at.isoformat(timespec='seconds')}] {record.result.label}")
    return 1 if service.current_session.last_error else 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = resolve_settings(args)
    setup_logging(settings)

    service = build_service(settings)
    if args.command == "detect":
        code = asyncio.run(run_detect(service, args.image, args.annotate))
    else:
        code = asyncio.run(run_live(service, settings, args.duration))
    sys.exit(code)


if __name__ == "__main__":  # pragma: no cover
    main()
