"""Azure VM provisioning: request types, builders, gateway, orchestration."""

from azprov.provisioning.azure import (
    create_managed_vm,
    create_nics,
    create_vm_extension,
    destroy_vm,
    provision_vm,
)
from azprov.provisioning.gateway import AzureGateway
from azprov.provisioning.ssh import KeyPair, load_key_pair
from azprov.provisioning.types import (
    AzureCredentials,
    ConfigurationError,
    ExtensionSpec,
    NetworkInterfaceSpec,
    ProvisionRequest,
)

__all__ = [
    "AzureCredentials",
    "AzureGateway",
    "ConfigurationError",
    "ExtensionSpec",
    "KeyPair",
    "NetworkInterfaceSpec",
    "ProvisionRequest",
    "create_managed_vm",
    "create_nics",
    "create_vm_extension",
    "destroy_vm",
    "load_key_pair",
    "provision_vm",
]
