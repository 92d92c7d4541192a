"""
Command-line entry point.

Usage:
    pride-overlay photo.jpg --flag transgender --factor 0.4 -o photo_flagged.png
    pride-overlay --list-flags
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .app import OverlayApp
from .blending import validate_blend_factor
from .config import OverlaySettings
from .errors import ConfigError, InvalidBlendFactorError, UnknownFlagError
from .flags import ALL_FLAGS, get_flag

logger = logging.getLogger(__name__)


def _factor(value: str) -> float:
    try:
        return validate_blend_factor(value)
    except InvalidBlendFactorError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _positive(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pride-overlay",
        description="Overlay a pride flag on an image and save the result as PNG.",
    )
    parser.add_argument("input", nargs="?", help="Image to overlay (PNG, JPEG or BMP)")
    parser.add_argument("--flag", help="Flag name or index (see --list-flags)")
    parser.add_argument("--factor", type=_factor, help="Blend factor between 0.0 and 1.0")
    parser.add_argument("-o", "--output", help="Output PNG path")
    parser.add_argument("--workers", type=_positive, help="Threads used for blending")
    parser.add_argument("--list-flags", action="store_true", help="List available flags and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _settings_from_args(args: argparse.Namespace) -> OverlaySettings:
    settings = OverlaySettings.from_env()
    overrides = {}
    if args.flag is not None:
        flag_id = int(args.flag) if args.flag.isdigit() else args.flag
        overrides["flag"] = get_flag(flag_id)
    if args.factor is not None:
        overrides["blend_factor"] = args.factor
    if args.output:
        overrides["output_path"] = args.output
    if args.workers is not None:
        overrides["max_workers"] = args.workers
    return replace(settings, **overrides)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_flags:
        for index, flag in enumerate(ALL_FLAGS):
            print(f"{index:2d}  {flag.name.lower():<12} {flag.value}")
        return 0

    if args.input is None:
        parser.print_usage(sys.stderr)
        print("pride-overlay: error: an input image is required", file=sys.stderr)
        return 2

    try:
        settings = _settings_from_args(args)
    except (ConfigError, UnknownFlagError) as e:
        print(f"pride-overlay: error: {e}", file=sys.stderr)
        return 2

    app = OverlayApp(settings=settings)
    if not app.load_image(args.input):
        print(app.state.status, file=sys.stderr)
        return 1

    app.tick()
    app.coordinator.wait()
    outcome = app.tick()
    if outcome is None or not outcome.ok:
        print(app.state.status, file=sys.stderr)
        return 1

    if not app.save():
        print(app.state.status, file=sys.stderr)
        return 1

    logger.info(app.state.status)
    return 0


if __name__ == "__main__":
    sys.exit(main())
