"""CLI entry point for the offer clicker."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from offerbot.core.config import Settings
from offerbot.device import get_device
from offerbot.device.base import Device, DeviceError
from offerbot.device.replay import ReplayDevice
from offerbot.pipeline.matcher import explain
from offerbot.pipeline.session import ClickerSession
from offerbot.pipeline.text import build_candidate


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Offer clicker - watch a job planner screen and accept matching offers",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- run subcommand (default) ---
    run_parser = subparsers.add_parser("run", help="Run the clicker against a device")
    run_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    run_parser.add_argument(
        "--serial",
        help="adb device serial (overrides device.serial in the config)",
    )
    run_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- match subcommand ---
    match_parser = subparsers.add_parser(
        "match",
        help="Check one offer text against the acceptance settings",
    )
    match_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    source = match_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Offer text (use \\n between lines)")
    source.add_argument("--file", help="File holding the offer text")
    match_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- inspect subcommand ---
    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Show what the clicker sees on one screen without acting",
    )
    inspect_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    inspect_parser.add_argument(
        "--dump",
        help="Saved uiautomator XML to inspect instead of the live device",
    )
    inspect_parser.add_argument(
        "--serial",
        help="adb device serial (overrides device.serial in the config)",
    )
    inspect_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- backward compat: top-level flags for run ---
    parser.add_argument("--config", default="config/settings.yaml", help=argparse.SUPPRESS)
    parser.add_argument("--serial", help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args(argv)

    # Default to run when no subcommand given
    if args.command is None:
        args.command = "run"

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str, serial: str | None = None) -> Settings:
    settings = Settings.from_yaml(path)
    if serial:
        settings = settings.model_copy(
            update={"device": settings.device.model_copy(update={"serial": serial})},
        )
    return settings


def ring_bell() -> None:
    """Audible notice on the controlling terminal."""
    print("\a", end="", flush=True)


async def run(settings: Settings) -> None:
    """Run the clicker until a booking is confirmed or Ctrl-C.

    Raises:
        ValueError: If the configured backend cannot drive a live session.
    """
    if settings.device.backend == "replay":
        msg = "The replay backend has no live screen to run against; use 'inspect --dump' instead"
        raise ValueError(msg)
    device = get_device(settings.device, settings.timing)

    async with ClickerSession(settings, device, on_booked=ring_bell) as session:
        session.store.set_service_enabled(True)
        await session.wait_stopped()

    print("Service stopped.")


def cmd_match(args: argparse.Namespace, settings: Settings) -> None:
    """Handle match subcommand."""
    if args.file:
        text = Path(args.file).read_text(encoding="utf-8")
    else:
        text = args.text.replace("\\n", "\n")

    report = explain(text, settings.acceptance)
    print("ACCEPT" if report.accepted else "REJECT")
    print(f"  Reason: {report.reason}")
    print(f"  Category: {report.category}")
    print(f"  Pickup hour: {report.hour}")
    print(f"  Fare: {report.price}")
    print(f"  Distance (km): {report.distance_km}")


async def cmd_inspect(args: argparse.Namespace, settings: Settings) -> None:
    """Handle inspect subcommand."""
    device: Device
    if args.dump:
        device = ReplayDevice.from_dump(args.dump)
    else:
        device = get_device(settings.device, settings.timing)

    root = await device.root()
    if root is None:
        print("Screen unavailable.")
        return

    markers = settings.markers
    labels = [
        ("booking confirmed", markers.booking_confirmed),
        ("confirm", markers.confirm),
        ("accept", markers.accept),
        *(("error", text) for text in markers.error_texts),
        ("planner", markers.planner),
    ]
    seen = [f"{label} ({text!r})" for label, text in labels
            if device.find_by_text(root, text) is not None]
    print(f"Markers on screen: {', '.join(seen) if seen else 'none'}")

    nodes = device.find_all_by_id(root, markers.candidate_id)
    print(f"{len(nodes)} candidates")
    for i, node in enumerate(nodes, 1):
        candidate = build_candidate(node)
        report = explain(candidate.joined_text, settings.acceptance)
        verdict = "ACCEPT" if report.accepted else "REJECT"
        print(f"  [{i}] {verdict}: {report.reason}")
        print(f"      {candidate.joined_text.replace(chr(10), ' | ')}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config, getattr(args, "serial", None))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "match":
        try:
            cmd_match(args, settings)
        except (FileNotFoundError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    elif args.command == "inspect":
        try:
            asyncio.run(cmd_inspect(args, settings))
        except (FileNotFoundError, ValueError, DeviceError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        try:
            asyncio.run(run(settings))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            print("\nInterrupted.")


if __name__ == "__main__":
    main()
