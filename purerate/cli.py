"""Command-line interface for running PureRate."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from purerate.app import AppConfig, PureRateApp
from purerate.coreaudio import CoreAudioUnavailableError
from purerate.devices import AudioDeviceManager
from purerate.log_source import DEFAULT_PROCESS
from purerate.monitor import POLL_INTERVAL_SECONDS
from purerate.utils import format_rate


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Keep the output device sample rate in sync with the music player"
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help=(
            "Target output device by id or name prefix (e.g., 'MacBook'). "
            "Defaults to the system output device. "
            "Use --list-audio-devices to see available devices."
        ),
    )
    parser.add_argument(
        "--list-audio-devices",
        action="store_true",
        help="List available audio output devices and exit",
    )
    parser.add_argument(
        "--process",
        default=DEFAULT_PROCESS,
        help="Name of the player process whose log messages are watched",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=POLL_INTERVAL_SECONDS,
        help="Seconds between log polls",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level to use",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run without the interactive terminal UI",
    )
    parser.add_argument(
        "--no-notifications",
        action="store_true",
        help="Disable switch notifications (saved to settings)",
    )
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory for settings.json (defaults to ~/.config/purerate)",
    )
    args = parser.parse_args(argv)
    if args.interval <= 0:
        parser.error("--interval must be positive")
    return args


def list_audio_devices() -> None:
    """List all available audio output devices."""
    try:
        manager = AudioDeviceManager()
    except CoreAudioUnavailableError as e:
        print(f"Error listing audio devices: {e}")
        sys.exit(1)

    devices = manager.list_output_devices()
    default_device = manager.default_output_device()

    print("Available audio output devices:")
    print()
    for device in devices:
        default_marker = " (default)" if device.device_id == default_device else ""
        caps = manager.capabilities(device.device_id)
        depth = f"{caps.bit_depth}-bit" if caps.bit_depth else "unknown depth"
        supported = ", ".join(format_rate(r) for r in caps.supported_rates) or "unknown"
        print(
            f"  [{device.device_id}] {device.name}{default_marker}\n"
            f"       Rate: {format_rate(caps.nominal_rate)}, {depth}\n"
            f"       Supports: {supported}"
        )
    if devices:
        print("\nTo select an audio device:\n  purerate --device <id>")


def main() -> int:
    """Run the CLI."""
    # Handle --list-audio-devices before starting async runtime
    args = parse_args(sys.argv[1:])
    if args.list_audio_devices:
        list_audio_devices()
        return 0

    config = AppConfig(
        audio_device=args.device,
        process=args.process,
        interval=args.interval,
        log_level=args.log_level,
        headless=args.headless,
        notifications=False if args.no_notifications else None,
        config_dir=args.config_dir,
    )

    app = PureRateApp(config)
    return asyncio.run(app.run())


if __name__ == "__main__":
    raise SystemExit(main())
