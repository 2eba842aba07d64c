#!/usr/bin/env python3
"""Main entry point for console-nav."""

import argparse
import dataclasses
import sys
import threading
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

import cv2

from capture.base import BaseCapture, rotate_image
from capture.capture_card import CaptureCardCapture
from capture.video_file import VideoFileCapture
from constants import CONSOLE_SWITCH1, CONSOLE_SWITCH2, DEFAULT_NAVIGATION_CONFIG, DEFAULT_SESSION_DIR
from controller.http_controller import HttpController
from exceptions import CaptureError, ConfigError, ControllerError, DeviceBusyError
from navigation.cancel import CancellationToken
from navigation.checkpoint import Checkpoint
from navigation.config import NavigationConfig, load_config
from navigation.date_time import date_time_route, home_to_settings_step, require_supported_console
from navigation.gate import VerificationGate
from navigation.route_config import load_route
from navigation.session import NavigationSession, SessionResult
from utils.logger import SessionLogger, get_logger
from vision.classifier import ClassifierKind, RegionClassifier
from vision.frame import Frame, Region
from vision.ocr import TesseractRecognizer, extract_item_name

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_ABORTED = 1
EXIT_CONFIG_ERROR = 2
EXIT_DEVICE_ERROR = 3
EXIT_INTERNAL_ERROR = 4


def _add_device_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Navigation config YAML (e.g. {DEFAULT_NAVIGATION_CONFIG}); defaults if omitted"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--device",
        type=int,
        default=0,
        help="Capture card device index"
    )
    source.add_argument(
        "--video",
        type=str,
        help="Replay a recorded video instead of a capture card"
    )
    parser.add_argument(
        "--controller-url",
        type=str,
        required=True,
        help="Controller bridge URL, e.g. http://192.168.1.20:8080"
    )
    parser.add_argument(
        "--out",
        type=str,
        default=DEFAULT_SESSION_DIR,
        help="Output directory for session logs"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vision-verified menu navigation for game consoles"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a route file")
    run_parser.add_argument("--route", type=str, required=True, help="Route YAML file")
    _add_device_args(run_parser)

    dt_parser = subparsers.add_parser("date-time", help="Navigate to the date change screen")
    dt_parser.add_argument(
        "--from-home",
        action="store_true",
        help="Start from the Home menu instead of System Settings"
    )
    _add_device_args(dt_parser)

    probe_parser = subparsers.add_parser("probe", help="Classify one region of a still image")
    probe_parser.add_argument("--config", type=str, default=None, help="Navigation config YAML")
    probe_parser.add_argument("--image", type=str, required=True, help="Image file")
    probe_parser.add_argument("--x", type=float, required=True)
    probe_parser.add_argument("--y", type=float, required=True)
    probe_parser.add_argument("--w", type=float, required=True)
    probe_parser.add_argument("--h", type=float, required=True)
    probe_parser.add_argument(
        "--kind",
        type=str,
        choices=[k.value for k in ClassifierKind],
        default=ClassifierKind.TEXT.value,
    )
    probe_parser.add_argument(
        "--item",
        action="store_true",
        help="Also print the item name extracted from a pickup message"
    )

    devices_parser = subparsers.add_parser("devices", help="List capture card indices that open")
    devices_parser.add_argument("--config", type=str, default=None, help="Navigation config YAML")
    devices_parser.add_argument(
        "--max-devices",
        type=int,
        default=10,
        help="Highest device index to try"
    )

    return parser


def build_classifier(config: NavigationConfig) -> RegionClassifier:
    recognizer = TesseractRecognizer(lang=config.tesseract_lang, config=config.tesseract_config)
    return RegionClassifier(
        config.build_text_classifier(recognizer),
        config.build_color_classifier(),
    )


def build_capture(args: argparse.Namespace, config: NavigationConfig) -> BaseCapture:
    if args.video:
        return VideoFileCapture(
            args.video,
            rotation=config.video_rotation,
            poll_interval_ms=config.frame_poll_interval_ms,
        )
    return CaptureCardCapture(
        device_index=args.device,
        rotation=config.video_rotation,
        poll_interval_ms=config.frame_poll_interval_ms,
    )


def with_home_step(checkpoints: list[Checkpoint], config: NavigationConfig) -> list[Checkpoint]:
    """Prefix the first checkpoint's action with the Home -> Settings step."""
    first = checkpoints[0]
    home = home_to_settings_step(config)
    return [dataclasses.replace(first, action=home.then(first.action, name=first.action.name))] + checkpoints[1:]


def run_session(
    args: argparse.Namespace,
    config: NavigationConfig,
    checkpoints: list[Checkpoint],
    preconditions=()
) -> int:
    """
    Run checkpoints on the configured device.

    Navigation runs on a worker thread so Ctrl+C can fire the
    cancellation token instead of killing a half-sent input.
    """
    session_logger = SessionLogger(args.out)
    cancel = CancellationToken()
    outcome: dict = {}

    try:
        capture = build_capture(args, config)
        capture.open()
    except (CaptureError, FileNotFoundError) as e:
        logger.error(f"Cannot open video source: {e}")
        return EXIT_DEVICE_ERROR

    try:
        with HttpController(args.controller_url, device_id=config.device_id) as controller:
            gate = VerificationGate(capture, build_classifier(config), timeout_ms=config.frame_timeout_ms)
            session = NavigationSession(
                config,
                controller,
                gate,
                cancel=cancel,
                preconditions=preconditions,
                session_logger=session_logger,
            )

            def worker() -> None:
                try:
                    outcome["result"] = session.run(checkpoints)
                except (ControllerError, DeviceBusyError) as e:
                    outcome["error"] = e
                except Exception as e:
                    outcome["crash"] = e

            thread = threading.Thread(target=worker, name="navigation", daemon=True)
            thread.start()
            try:
                while thread.is_alive():
                    thread.join(timeout=0.2)
            except KeyboardInterrupt:
                logger.info("Interrupted, cancelling navigation...")
                cancel.cancel()
                thread.join()
    finally:
        capture.close()

    if "error" in outcome:
        error = outcome["error"]
        error.log()
        session_logger.log_error("Navigation failed", error)
        return EXIT_DEVICE_ERROR

    if "crash" in outcome:
        error = outcome["crash"]
        logger.error(f"Navigation crashed: {error}", exc_info=error)
        session_logger.log_error("Navigation crashed", error)
        return EXIT_INTERNAL_ERROR

    result: SessionResult = outcome["result"]
    logger.info(f"Result: {result.status.value}, {len(result.trail)} verifications")
    logger.info(f"Logs saved to: {args.out}")
    return EXIT_SUCCESS if result.succeeded else EXIT_ABORTED


def probe(args: argparse.Namespace, config: NavigationConfig) -> int:
    """Classify one region of a still image and print the reading."""
    image = cv2.imread(args.image)
    if image is None:
        logger.error(f"Cannot read image: {args.image}")
        return EXIT_CONFIG_ERROR

    try:
        region = Region(args.x, args.y, args.w, args.h)
    except ValueError as e:
        logger.error(f"Invalid region: {e}")
        return EXIT_CONFIG_ERROR

    frame = Frame(rotate_image(image, config.video_rotation))
    result = build_classifier(config).classify(frame, region, ClassifierKind(args.kind))
    print(f"{result.kind.value}: {result.value!r}{' (ambiguous)' if result.ambiguous else ''}")
    if args.item and result.kind is ClassifierKind.TEXT:
        print(f"item: {extract_item_name(result.value)!r}")
    return EXIT_SUCCESS


def list_devices(args: argparse.Namespace) -> int:
    """Print the capture devices that can be opened, for picking --device."""
    devices = CaptureCardCapture.get_available_devices(max_devices=args.max_devices)
    if not devices:
        logger.error("No capture devices found")
        return EXIT_DEVICE_ERROR
    for device in devices:
        resolution = "x".join(str(v) for v in device.resolution) if device.resolution else "unknown"
        print(f"{device.index}: {device.backend} ({resolution})")
    return EXIT_SUCCESS


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.command == "run":
            return run_session(args, config, load_route(args.route, config))
        if args.command == "date-time":
            checkpoints = date_time_route(config)
            preconditions = ()
            if args.from_home:
                preconditions = (require_supported_console(config),)
                if config.console_type in (CONSOLE_SWITCH1, CONSOLE_SWITCH2):
                    checkpoints = with_home_step(checkpoints, config)
            return run_session(args, config, checkpoints, preconditions)
        if args.command == "devices":
            return list_devices(args)
        return probe(args, config)
    except (ConfigError, FileNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
