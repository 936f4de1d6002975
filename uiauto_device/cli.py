# uiauto_device/cli.py
"""
@file cli.py
@brief Command-line interface for uiauto-device.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from .config import LifecycleTimeConfig
from .config_flags import ConfigFlagInspector, parse_config_changes
from .exceptions import UIAutoError
from .manifest import ManifestRepository
from .screen import Screen
from .timinglogger import TIMING_LOGGER
from .timings import list_presets

EXIT_OK = 0
EXIT_NOT_HANDLED = 1
EXIT_ERROR = 2


def _configure_timing_logger_from_env() -> None:
    """Configure timing logging from environment variables."""
    enabled = os.getenv("UIAUTO_TIMING_LOGGING", "").lower() in {"1", "true", "yes", "on"}
    if not enabled:
        TIMING_LOGGER.disable()
        return

    log_file = os.getenv("UIAUTO_TIMING_LOG_FILE")
    level = os.getenv("UIAUTO_TIMING_LOG_LEVEL", "INFO")
    TIMING_LOGGER.configure(file_path=log_file, level=level)
    TIMING_LOGGER.enable()


def _cmd_presets(args: argparse.Namespace) -> int:
    data = {}
    for name in list_presets():
        data[name] = LifecycleTimeConfig.build_from(preset=name, env={}).to_dict()
    print(json.dumps(data, indent=2, sort_keys=True))
    return EXIT_OK


def _cmd_validate(args: argparse.Namespace) -> int:
    repo = ManifestRepository.from_yaml(args.manifest)
    screens = repo.list_screens()
    print(f"Manifest OK: {repo.source} ({len(screens)} screens)")
    for identity in screens:
        print(f"  - {identity}")
    return EXIT_OK


def _cmd_check_config(args: argparse.Namespace) -> int:
    repo = ManifestRepository.from_yaml(args.manifest)
    config_bit = parse_config_changes(args.config)
    screen = Screen(repo.get_screen_info(args.screen).identity)
    handled = ConfigFlagInspector(repo).handles_config_change(screen, config_bit)
    print(json.dumps({
        "screen": screen.name,
        "config": args.config,
        "config_bit": hex(config_bit),
        "handled": handled,
    }))
    return EXIT_OK if handled else EXIT_NOT_HANDLED


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    argv = argv if argv is not None else sys.argv[1:]
    _configure_timing_logger_from_env()

    p = argparse.ArgumentParser(
        prog="uiauto-device",
        description="uiauto-device - screen lifecycle synchronization helpers",
    )
    p.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("presets", help="Print lifecycle timing presets as JSON")

    valp = sub.add_parser("validate", help="Validate a screen manifest YAML")
    valp.add_argument("--manifest", "-m", required=True, help="Path to manifest.yaml")

    chkp = sub.add_parser(
        "check-config",
        help="Check whether a screen handles a configuration change itself",
    )
    chkp.add_argument("--manifest", "-m", required=True, help="Path to manifest.yaml")
    chkp.add_argument("--screen", "-s", required=True, help="Screen name, e.g. .MainActivity")
    chkp.add_argument(
        "--config", "-c", required=True, action="append",
        help="Config change category, e.g. orientation (repeatable)",
    )

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] [%(levelname)-8s] %(name)s: %(message)s",
    )

    try:
        if args.cmd == "presets":
            return _cmd_presets(args)
        if args.cmd == "validate":
            return _cmd_validate(args)
        if args.cmd == "check-config":
            return _cmd_check_config(args)
    except UIAutoError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR

    p.error(f"unknown command: {args.cmd}")
    return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
