"""Request builders: turn provisioning requests into Azure SDK payloads.

Everything here is pure. The only collaborator is the key pair, whose
public half is injected into every Linux VM.
"""

import base64

from azure.mgmt.compute import models as compute_models
from azure.mgmt.network import models as network_models

from azprov.provisioning.types import ConfigurationError

_CACHING_TYPES = {
    "None": compute_models.CachingTypes.NONE,
    "ReadOnly": compute_models.CachingTypes.READ_ONLY,
    "ReadWrite": compute_models.CachingTypes.READ_WRITE,
}

_PUBLIC_IP_ALLOCATION = {
    "Static": network_models.IPAllocationMethod.STATIC,
    "Dynamic": network_models.IPAllocationMethod.DYNAMIC,
    "None": None,
}

LINUX_EXTENSION_PUBLISHER = "Microsoft.Azure.Extensions"
LINUX_EXTENSION_TYPE = "CustomScript"
LINUX_EXTENSION_VERSION = "2.0"


# ── Compute ────────────────────────────────────────────────────────


def resolve_caching(os_disk_caching):
    """Map a caching mode string to CachingTypes.

    ARM recommends ReadWrite caching on the OS disk, so unset and
    unrecognized values fall back to it.
    """
    return _CACHING_TYPES.get(os_disk_caching or "", compute_models.CachingTypes.READ_WRITE)


def build_storage_profile(vm_name, os_disk_caching, platform, premium_os_disk):
    """Build a storage profile with a managed OS disk created from the image.

    Args:
        premium_os_disk: the literal string "true" selects Premium_LRS,
            anything else (including "True") selects Standard_LRS.
    """
    if premium_os_disk == "true":
        storage_account_type = compute_models.StorageAccountTypes.PREMIUM_LRS
    else:
        storage_account_type = compute_models.StorageAccountTypes.STANDARD_LRS

    os_disk = compute_models.OSDisk(
        name=f"{vm_name}-osdisk",
        os_type=platform,
        create_option=compute_models.DiskCreateOptionTypes.FROM_IMAGE,
        caching=resolve_caching(os_disk_caching),
        managed_disk=compute_models.ManagedDiskParameters(storage_account_type=storage_account_type),
    )
    return compute_models.StorageProfile(os_disk=os_disk)


def build_image_reference(image):
    """Build an image reference from a managed image id or a marketplace URN.

    A locator starting with "/" is a managed image resource id and is used
    verbatim. Anything else must be publisher:offer:sku:version.

    Raises:
        ConfigurationError: if a marketplace URN does not have four non-empty fields.
    """
    if not image:
        raise ConfigurationError("Image reference is required")

    if image.startswith("/"):
        return compute_models.ImageReference(id=image)

    urn = image.split(":")
    if len(urn) != 4 or not all(urn):
        raise ConfigurationError(
            f"Marketplace image must be 'publisher:offer:sku:version' (got {image!r})"
        )
    publisher, offer, sku, version = urn
    return compute_models.ImageReference(publisher=publisher, offer=offer, sku=sku, version=version)


def build_network_profile(nic_ids):
    """One interface reference per NIC id, in order; the first is primary."""
    interfaces = [
        compute_models.NetworkInterfaceReference(id=nic_id, primary=index == 0)
        for index, nic_id in enumerate(nic_ids)
    ]
    return compute_models.NetworkProfile(network_interfaces=interfaces)


def _authorized_keys_path(username):
    return f"/home/{username}/.ssh/authorized_keys"


def build_os_profile(request, key_pair):
    """Build the OS profile: admin credentials, SSH keys and custom data.

    The local key pair is always authorized for the admin user. A second,
    caller-supplied key is appended when present.
    """
    keys_path = _authorized_keys_path(request.username)
    public_keys = [compute_models.SshPublicKey(path=keys_path, key_data=key_pair.public)]
    if request.ssh_key_data:
        public_keys.append(compute_models.SshPublicKey(path=keys_path, key_data=request.ssh_key_data))

    linux_configuration = compute_models.LinuxConfiguration(
        disable_password_authentication=request.disable_password_authentication,
        ssh=compute_models.SshConfiguration(public_keys=public_keys),
    )

    custom_data = None
    if request.custom_data is not None:
        custom_data = base64.b64encode(request.custom_data.encode()).decode()

    return compute_models.OSProfile(
        computer_name=request.name,
        admin_username=request.username,
        admin_password=request.password,
        linux_configuration=linux_configuration,
        custom_data=custom_data,
    )


def build_vm(request, key_pair, nic_ids=None):
    """Compose the full create-VM payload.

    Args:
        nic_ids: NIC resource ids to attach; defaults to
            request.network_interface_card_ids.
    """
    storage_profile = build_storage_profile(
        request.name,
        request.os_disk_caching,
        request.platform,
        request.premium_os_disk,
    )
    storage_profile.image_reference = build_image_reference(request.image)

    vm = compute_models.VirtualMachine(
        location=request.location,
        os_profile=build_os_profile(request, key_pair),
        storage_profile=storage_profile,
        hardware_profile=compute_models.HardwareProfile(vm_size=request.vm_size),
        network_profile=build_network_profile(
            request.network_interface_card_ids if nic_ids is None else nic_ids
        ),
    )
    if request.availability_set_id:
        vm.availability_set = compute_models.SubResource(id=request.availability_set_id)
    return vm


def build_extension(region, spec):
    """Build a custom-script extension payload.

    Returns:
        VirtualMachineExtension, or None when there is neither a
        command nor script URIs.
    """
    if spec is None or not spec.present:
        return None

    extension = compute_models.VirtualMachineExtension(
        location=region,
        auto_upgrade_minor_version=True,
        settings={
            "commandToExecute": spec.script_command,
            "fileUris": list(spec.script_uris),
        },
    )
    if spec.platform == "Linux":
        extension.publisher = LINUX_EXTENSION_PUBLISHER
        extension.type_properties_type = LINUX_EXTENSION_TYPE
        extension.type_handler_version = LINUX_EXTENSION_VERSION
    return extension


# ── Network ────────────────────────────────────────────────────────


def resolve_public_ip_allocation(public_ip):
    """Map a public IP mode to IPAllocationMethod, or None for no public IP.

    Raises:
        ConfigurationError: for anything other than Static, Dynamic or None.
    """
    if public_ip not in _PUBLIC_IP_ALLOCATION:
        raise ConfigurationError(
            f"Public IP value must be either 'Dynamic', 'Static' or 'None' (got {public_ip!r})"
        )
    return _PUBLIC_IP_ALLOCATION[public_ip]


def build_public_ip(region, allocation):
    return network_models.PublicIPAddress(location=region, public_ip_allocation_method=allocation)


def build_nic(region, name, spec, public_ip=None):
    """Build a NIC with a single IP configuration on the interface's subnet.

    Args:
        public_ip: created PublicIPAddress (or anything with an ``id``) to attach.
    """
    allocation = network_models.IPAllocationMethod(spec.private_ip_allocation)
    ip_configuration = network_models.NetworkInterfaceIPConfiguration(
        name=name,
        private_ip_allocation_method=allocation,
        private_ip_address=spec.private_ip if allocation == network_models.IPAllocationMethod.STATIC else None,
        subnet=network_models.Subnet(id=spec.subnet_id),
        public_ip_address=network_models.PublicIPAddress(id=public_ip.id) if public_ip is not None else None,
    )
    return network_models.NetworkInterface(location=region, ip_configurations=[ip_configuration])
