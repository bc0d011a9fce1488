"""Azure VM provisioning: NICs, VM, extension, and teardown sequences.

Bridge between the CLI and the gateway. Configuration errors are raised
before the first remote call; remote errors propagate unchanged after
logging which sub-resources were already created.
"""

import json
import logging

from azure.mgmt.network import models as network_models

from azprov.provisioning.builder import (
    build_extension,
    build_nic,
    build_public_ip,
    build_vm,
    resolve_public_ip_allocation,
)
from azprov.provisioning.types import EXTENSION_NAME

logger = logging.getLogger(__name__)

DRY_RUN_SUBSCRIPTION = "00000000-0000-0000-0000-000000000000"


# ── Naming ─────────────────────────────────────────────────────────


def nic_name(vm_name, index):
    return f"{vm_name}-nic{index}"


def public_ip_name(vm_name, index):
    return f"{vm_name}-pip{index}"


def resource_id(subscription_id, rg_name, resource_type, name):
    """ARM resource id, e.g. for ``Microsoft.Network/networkInterfaces``."""
    return f"/subscriptions/{subscription_id}/resourceGroups/{rg_name}/providers/{resource_type}/{name}"


def resource_name(resource_id_):
    return resource_id_.rstrip("/").rsplit("/", 1)[-1]


def _log_payload(action, name, payload):
    logger.info(f"[dry-run] {action} {name}")
    logger.info(f"[dry-run] payload: {json.dumps(payload.as_dict(), indent=2)}")


# ── Create ─────────────────────────────────────────────────────────


def create_nics(gateway, request, dry_run=False, created=None):
    """Create a public IP (when requested) and a NIC for every interface.

    All public IP modes are validated before anything is created.

    Args:
        created: optional list that receives the id of every resource
            as soon as it exists.

    Returns:
        List of NetworkInterface resources in interface order.
    """
    created = [] if created is None else created
    allocations = [resolve_public_ip_allocation(spec.public_ip) for spec in request.interfaces]
    subscription_id = gateway.subscription_id or DRY_RUN_SUBSCRIPTION

    nics = []
    for spec, allocation in zip(request.interfaces, allocations):
        pip = None
        if allocation is not None:
            name = public_ip_name(request.name, spec.index)
            params = build_public_ip(request.location, allocation)
            if dry_run:
                _log_payload("create public IP", name, params)
                pip = network_models.PublicIPAddress(
                    id=resource_id(subscription_id, request.resource_group, "Microsoft.Network/publicIPAddresses", name)
                )
            else:
                logger.info(f"Creating public IP {name} ({spec.public_ip})...")
                pip = gateway.create_or_update_public_ip(request.resource_group, name, params)
                created.append(pip.id)

        name = nic_name(request.name, spec.index)
        params = build_nic(request.location, name, spec, public_ip=pip)
        if dry_run:
            _log_payload("create NIC", name, params)
            nic = network_models.NetworkInterface(
                id=resource_id(subscription_id, request.resource_group, "Microsoft.Network/networkInterfaces", name)
            )
        else:
            logger.info(f"Creating NIC {name} on subnet {resource_name(spec.subnet_id)}...")
            nic = gateway.create_or_update_nic(request.resource_group, name, params)
            created.append(nic.id)
        nics.append(nic)
    return nics


def create_managed_vm(gateway, request, key_pair, nic_ids=None, dry_run=False):
    """Build the VM payload and submit it.

    Returns:
        The VirtualMachine resource, or None in dry-run mode.
    """
    params = build_vm(request, key_pair, nic_ids=nic_ids)
    if dry_run:
        _log_payload("create VM", request.name, params)
        return None

    logger.debug(f"Creating Virtual Machine {request.name} in Resource Group {request.resource_group}.")
    logger.info(f"Creating VM {request.name} ({request.vm_size}) in {request.location}...")
    return gateway.create_or_update_vm(request.resource_group, request.name, params)


def create_vm_extension(gateway, request, dry_run=False):
    """Submit the custom-script extension, if the request has one.

    Returns:
        The VirtualMachineExtension resource, or None when there is nothing
        to run or in dry-run mode.
    """
    params = build_extension(request.location, request.extension)
    if params is None:
        return None
    if dry_run:
        _log_payload("create extension", EXTENSION_NAME, params)
        return None

    logger.info(f"Running custom script extension on {request.name}...")
    return gateway.create_or_update_vm_extension(request.resource_group, request.name, EXTENSION_NAME, params)


def provision_vm(gateway, request, key_pair, dry_run=False):
    """Create NICs, then the VM, then the custom-script extension.

    On failure the already-created sub-resources are logged and the
    original exception is re-raised; nothing is rolled back.

    Returns:
        The VirtualMachine resource, or None in dry-run mode.
    """
    created = []
    try:
        nics = create_nics(gateway, request, dry_run=dry_run, created=created)
        nic_ids = list(request.network_interface_card_ids) + [nic.id for nic in nics]

        vm = create_managed_vm(gateway, request, key_pair, nic_ids=nic_ids, dry_run=dry_run)
        if vm is not None:
            created.append(vm.id)

        create_vm_extension(gateway, request, dry_run=dry_run)
    except Exception:
        if created:
            logger.error(f"Provisioning {request.name} failed; already created: {', '.join(created)}")
        raise

    if vm is not None:
        logger.info(f"VM {request.name} created.")
    return vm


# ── Teardown ───────────────────────────────────────────────────────


def destroy_vm(gateway, rg_name, vm_name, dry_run=False):
    """Delete a VM, then its NICs, their public IPs, and its OS disk.

    Waits for each deletion that a later one depends on.

    Returns:
        Names of the deleted resources, in deletion order.
    """
    if dry_run:
        logger.info(f"[dry-run] delete VM {vm_name} in {rg_name} with its NICs, public IPs and OS disk")
        return []

    vm = gateway.get_vm(rg_name, vm_name)
    nic_ids = [ref.id for ref in (vm.network_profile.network_interfaces if vm.network_profile else [])]
    os_disk = vm.storage_profile.os_disk if vm.storage_profile else None

    deleted = []
    logger.info(f"Deleting VM {vm_name}...")
    gateway.delete_vm(rg_name, vm_name).wait()
    deleted.append(vm_name)

    for nic_id in nic_ids:
        name = resource_name(nic_id)
        nic = gateway.get_nic(rg_name, name)
        pip_ids = [
            conf.public_ip_address.id
            for conf in (nic.ip_configurations or [])
            if conf.public_ip_address is not None
        ]
        logger.info(f"Deleting NIC {name}...")
        gateway.delete_nic(rg_name, name).wait()
        deleted.append(name)

        for pip_id in pip_ids:
            pip_name = resource_name(pip_id)
            logger.info(f"Deleting public IP {pip_name}...")
            gateway.delete_public_ip(rg_name, pip_name).wait()
            deleted.append(pip_name)

    if os_disk is not None and os_disk.name:
        logger.info(f"Deleting OS disk {os_disk.name}...")
        gateway.delete_disk(rg_name, os_disk.name).wait()
        deleted.append(os_disk.name)

    logger.info(f"VM {vm_name} deleted.")
    return deleted
