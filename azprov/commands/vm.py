"""VM lifecycle commands: create, delete, start, stop, status."""

import logging
import sys

from azprov.config import load_config, load_request, resolve_credentials, resolve_ssh_key
from azprov.provisioning.azure import destroy_vm, provision_vm
from azprov.provisioning.gateway import AzureGateway
from azprov.provisioning.ssh import KeyPair, load_key_pair
from azprov.provisioning.types import ConfigurationError

logger = logging.getLogger(__name__)

DRY_RUN_PUBLIC_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIDryRunPlaceholderKeyMaterial azprov-dry-run"


def make_gateway(args, required=True):
    """Build a gateway from --config and the environment.

    Credentials are only required when the command will call Azure.
    """
    config = load_config(args.config)
    return config, AzureGateway(resolve_credentials(config, required=required))


def _resource_group(args, config):
    rg = args.resource_group or (config.get("azure") or {}).get("resource_group")
    if not rg:
        raise ConfigurationError("Resource group required. Use --resource-group or set azure.resource_group in the config.")
    return rg


def _key_pair(args, config):
    ssh_key = resolve_ssh_key(config, args.ssh_key)
    try:
        return load_key_pair(ssh_key, generate=args.generate_ssh_key and not args.dry_run)
    except ConfigurationError:
        if not args.dry_run:
            raise
        return KeyPair(public=DRY_RUN_PUBLIC_KEY, private_key_path=ssh_key)


# ── CLI handlers ───────────────────────────────────────────────────


def handle_create(args):
    """CLI handler for 'vm create'."""
    config, gateway = make_gateway(args, required=not args.dry_run)
    request = load_request(args.request, config)
    key_pair = _key_pair(args, config)

    logger.info(f"Provisioning VM '{request.name}' in '{request.resource_group}' ({request.location})")
    vm = provision_vm(gateway, request, key_pair, dry_run=args.dry_run)
    if vm is not None:
        logger.info(f"VM id: {vm.id}")
        logger.info(f"Admin user: {request.username} (key: {key_pair.private_key_path})")


def handle_delete(args):
    """CLI handler for 'vm delete'."""
    config, gateway = make_gateway(args, required=not args.dry_run)
    rg = _resource_group(args, config)
    deleted = destroy_vm(gateway, rg, args.name, dry_run=args.dry_run)
    if deleted:
        logger.info(f"Deleted: {', '.join(deleted)}")


def handle_start(args):
    """CLI handler for 'vm start'."""
    config, gateway = make_gateway(args)
    rg = _resource_group(args, config)
    logger.info(f"Starting VM {args.name}...")
    gateway.start_vm(rg, args.name)
    logger.info("VM started.")


def handle_stop(args):
    """CLI handler for 'vm stop'."""
    config, gateway = make_gateway(args)
    rg = _resource_group(args, config)
    logger.info(f"Powering off and deallocating VM {args.name}...")
    gateway.stop_vm(rg, args.name)
    logger.info("VM deallocated.")


def handle_status(args):
    """CLI handler for 'vm status'."""
    config, gateway = make_gateway(args)
    rg = _resource_group(args, config)
    status = gateway.check_vm_status(rg, args.name)
    if status is None:
        logger.error(f"No power state reported for VM {args.name}")
        sys.exit(1)
    logger.info(status)


# ── Registration ───────────────────────────────────────────────────


def _add_target_args(parser):
    parser.add_argument("--name", required=True, help="VM name")
    parser.add_argument("--resource-group", default=None, help="Resource group (default: azure.resource_group from config)")


def register_vm_command(subparsers):
    """Register the 'vm' command with its action subparsers."""
    vm_parser = subparsers.add_parser("vm", help="Manage Azure VMs")
    action_subparsers = vm_parser.add_subparsers(dest="action", required=True)

    create_parser = action_subparsers.add_parser("create", help="Create a VM with its NICs and public IPs")
    create_parser.add_argument("--request", required=True, help="YAML VM definition (name, image, vm_size, interfaces_attributes, ...)")
    create_parser.add_argument("--ssh-key", default=None, help="SSH private key path; <path>.pub is authorized on the VM (default: ~/.ssh/id_ed25519)")
    create_parser.add_argument("--generate-ssh-key", action="store_true", help="Generate the SSH key pair if it does not exist")
    create_parser.add_argument("--dry-run", action="store_true", help="Print request payloads without calling Azure")
    create_parser.set_defaults(func=handle_create)

    delete_parser = action_subparsers.add_parser("delete", help="Delete a VM, its NICs, public IPs and OS disk")
    _add_target_args(delete_parser)
    delete_parser.add_argument("--dry-run", action="store_true", help="Print what would be deleted without calling Azure")
    delete_parser.set_defaults(func=handle_delete)

    start_parser = action_subparsers.add_parser("start", help="Start a VM")
    _add_target_args(start_parser)
    start_parser.set_defaults(func=handle_start)

    stop_parser = action_subparsers.add_parser("stop", help="Power off and deallocate a VM")
    _add_target_args(stop_parser)
    stop_parser.set_defaults(func=handle_stop)

    status_parser = action_subparsers.add_parser("status", help="Show a VM's power state")
    _add_target_args(status_parser)
    status_parser.set_defaults(func=handle_status)
