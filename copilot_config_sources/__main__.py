# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Module entry point for running copilot_config_sources tools."""

import sys

if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "resolve":
        # Remove the subcommand from argv so argparse works correctly
        sys.argv.pop(1)
        from .cli import main
        sys.exit(main())
    else:
        print("Usage: python -m copilot_config_sources resolve --config <file> [--format json|yaml] [--watch] [--log-level LEVEL]")
        sys.exit(1)
