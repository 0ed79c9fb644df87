# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Command line tool that resolves a configuration document."""

import argparse
import json
import sys
import threading
from typing import List, Optional

import yaml

from .exceptions import ConfigSourceError
from .logger_factory import create_logger
from .factory import build_config_sources
from .manager import ConfigSourceManager
from .resolver import CONFIG_SOURCES_KEY
from .watcher import ChangeEvent


def load_document(path: str) -> dict:
    """Load a YAML (or JSON) configuration document.

    Raises:
        ConfigSourceError: If the file cannot be read or is not a mapping
    """
    try:
        with open(path, encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigSourceError(f"Failed to load configuration document {path}: {e}") from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigSourceError(
            f"Configuration document {path} must be a mapping, got {type(document).__name__}"
        )
    return document


def render(tree: dict, output_format: str) -> str:
    """Render a resolved tree as JSON or YAML."""
    if output_format == "yaml":
        return yaml.safe_dump(tree, sort_keys=False, default_flow_style=False)
    return json.dumps(tree, indent=2, default=str)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``python -m copilot_config_sources resolve``."""
    parser = argparse.ArgumentParser(
        prog="python -m copilot_config_sources resolve",
        description="Resolve environment and config source references in a configuration document",
    )
    parser.add_argument("--config", required=True, help="Path to the YAML configuration document")
    parser.add_argument(
        "--format",
        choices=["json", "yaml"],
        default="json",
        help="Output format of the resolved configuration (default: json)",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="After printing, wait for the first change of a watched value",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Level of the resolution logs written to stderr (default: WARNING)",
    )
    args = parser.parse_args(argv)
    logger = create_logger(logger_type="stderr", level=args.log_level, name="copilot_config_sources.cli")

    received: list[ChangeEvent] = []
    changed = threading.Event()

    def on_change(event: ChangeEvent) -> None:
        received.append(event)
        changed.set()

    try:
        document = load_document(args.config)
        sources = build_config_sources(document.get(CONFIG_SOURCES_KEY), logger=logger)
    except ConfigSourceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    exit_code = 0
    manager = ConfigSourceManager(sources, logger=logger, owned_sources=sources)
    try:
        resolved = manager.resolve(document, on_change=on_change if args.watch else None)
        print(render(resolved, args.format))

        if args.watch and not manager.touched.watches:
            print("No watched config sources, nothing to wait for", file=sys.stderr)
        elif args.watch:
            changed.wait()
            event = received[0]
            if event.error is None:
                print("Configuration changed", file=sys.stderr)
            else:
                print(f"Watch failed: {event.error}", file=sys.stderr)
                exit_code = 1
    except ConfigSourceError as e:
        print(f"Error: {e}", file=sys.stderr)
        exit_code = 1
    except KeyboardInterrupt:
        pass
    finally:
        try:
            manager.close()
        except ConfigSourceError as e:
            print(f"Error: {e}", file=sys.stderr)
            exit_code = 1

    return exit_code
