#!/usr/bin/env python3
"""Azure VM provisioning tools — CLI entrypoint."""

import argparse
import logging
import sys

from azure.core.exceptions import AzureError

from azprov.commands.inventory import register_groups_command, register_sizes_command
from azprov.commands.vm import register_vm_command
from azprov.logging_setup import setup_cli_logging
from azprov.provisioning.types import ConfigurationError

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Azure VM provisioning tools")
    parser.add_argument("--config", default=None, help="Config file (default: ./azprov.yaml if present, else env vars only)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging, including Azure SDK requests")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_vm_command(subparsers)
    register_groups_command(subparsers)
    register_sizes_command(subparsers)

    args = parser.parse_args(argv)
    setup_cli_logging(verbose=args.verbose)
    try:
        args.func(args)
    except ConfigurationError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except AzureError as e:
        logger.error(f"Azure error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
