"""Read-only inventory commands: resource groups and VM sizes."""

import logging

from azprov.commands.vm import make_gateway

logger = logging.getLogger(__name__)


def handle_groups(args):
    """CLI handler for 'groups'."""
    _, gateway = make_gateway(args)
    for name in sorted(gateway.resource_groups()):
        logger.info(name)


def handle_sizes(args):
    """CLI handler for 'sizes'."""
    _, gateway = make_gateway(args)
    sizes = gateway.list_vm_sizes(args.region)
    if not sizes:
        logger.info(f"No VM sizes found for region '{args.region}'")
        return
    logger.info(f"{'NAME':<32} {'CORES':>5} {'MEMORY_MB':>10}")
    for size in sorted(sizes, key=lambda s: s.name):
        logger.info(f"{size.name:<32} {size.number_of_cores:>5} {size.memory_in_mb:>10}")


def register_groups_command(subparsers):
    parser = subparsers.add_parser("groups", help="List resource groups in the subscription")
    parser.set_defaults(func=handle_groups)


def register_sizes_command(subparsers):
    parser = subparsers.add_parser("sizes", help="List VM sizes available in a region")
    parser.add_argument("--region", required=True, help="Region name, e.g. westeurope or 'West Europe'")
    parser.set_defaults(func=handle_sizes)
