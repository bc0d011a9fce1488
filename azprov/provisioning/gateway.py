"""Thin facade over the Azure management clients.

One method per remote operation. Errors from the SDK propagate unchanged;
there is no retry, timeout or classification at this layer.
"""

import logging
import re

from azure.identity import ClientSecretCredential
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient
from azure.mgmt.storage import StorageManagementClient

logger = logging.getLogger(__name__)


def parse_power_state(virtual_machine):
    """Return the power state token (e.g. "running") from an instance view.

    Scans the status list for a code containing "PowerState" and returns
    the part after "/". Returns None when no such status exists or the
    matching code has nothing after a "/".
    """
    instance_view = virtual_machine.instance_view
    if instance_view is None:
        return None
    power_state = None
    for status in instance_view.statuses or []:
        if status.code and "PowerState" in status.code:
            power_state = status.code.partition("/")[2] or None
    return power_state


def normalize_region(region):
    return re.sub(r"\s+", "", region).lower()


class AzureGateway:
    """Stateless wrapper around the ARM sub-clients for one subscription.

    The service-principal credential is built once, on first use, and held
    for the gateway's lifetime. Sub-clients are created lazily and reused.
    """

    def __init__(self, credentials):
        self.credentials = credentials
        self._credential = None
        self._compute_client = None
        self._network_client = None
        self._resource_client = None
        self._storage_client = None

    @property
    def subscription_id(self):
        return self.credentials.subscription_id

    @property
    def credential(self):
        if self._credential is None:
            logger.debug(f"Authenticating service principal (tenant={self.credentials.tenant_id}, client={self.credentials.client_id})")
            self._credential = ClientSecretCredential(
                tenant_id=self.credentials.tenant_id,
                client_id=self.credentials.client_id,
                client_secret=self.credentials.client_secret,
            )
        return self._credential

    @property
    def compute_client(self):
        if self._compute_client is None:
            self._compute_client = ComputeManagementClient(self.credential, self.subscription_id)
        return self._compute_client

    @property
    def network_client(self):
        if self._network_client is None:
            self._network_client = NetworkManagementClient(self.credential, self.subscription_id)
        return self._network_client

    @property
    def resource_client(self):
        if self._resource_client is None:
            self._resource_client = ResourceManagementClient(self.credential, self.subscription_id)
        return self._resource_client

    @property
    def storage_client(self):
        if self._storage_client is None:
            self._storage_client = StorageManagementClient(self.credential, self.subscription_id)
        return self._storage_client

    # ── Inventory ──────────────────────────────────────────────────

    def resource_groups(self):
        """Names of all resource groups in the subscription."""
        return [rg.name for rg in self.resource_client.resource_groups.list()]

    def virtual_networks(self):
        return list(self.network_client.virtual_networks.list_all())

    def subnets(self, rg_name, vnet_name):
        return list(self.network_client.subnets.list(rg_name, vnet_name))

    def storage_accounts(self):
        return list(self.storage_client.storage_accounts.list())

    def list_vm_sizes(self, region):
        """VM sizes available in *region*; empty list when no region is given.

        The region is stripped of whitespace and lowercased, so display
        names like "West Europe" work.
        """
        if not region or not region.strip():
            return []
        return list(self.compute_client.virtual_machine_sizes.list(normalize_region(region)))

    def list_vms(self, region):
        return list(self.compute_client.virtual_machines.list_by_location(region))

    # ── Reads ──────────────────────────────────────────────────────

    def get_vm(self, rg_name, vm_name):
        return self.compute_client.virtual_machines.get(rg_name, vm_name)

    def get_vm_extension(self, rg_name, vm_name, extension_name):
        return self.compute_client.virtual_machine_extensions.get(rg_name, vm_name, extension_name)

    def get_public_ip(self, rg_name, pip_name):
        return self.network_client.public_ip_addresses.get(rg_name, pip_name)

    def get_nic(self, rg_name, nic_name):
        return self.network_client.network_interfaces.get(rg_name, nic_name)

    # ── Create / update ────────────────────────────────────────────

    def create_or_update_vm(self, rg_name, vm_name, parameters):
        """Submit a VM payload and wait for the resulting VirtualMachine."""
        poller = self.compute_client.virtual_machines.begin_create_or_update(rg_name, vm_name, parameters)
        return poller.result()

    def create_or_update_vm_extension(self, rg_name, vm_name, extension_name, parameters):
        poller = self.compute_client.virtual_machine_extensions.begin_create_or_update(
            rg_name, vm_name, extension_name, parameters
        )
        return poller.result()

    def create_or_update_public_ip(self, rg_name, pip_name, parameters):
        poller = self.network_client.public_ip_addresses.begin_create_or_update(rg_name, pip_name, parameters)
        return poller.result()

    def create_or_update_nic(self, rg_name, nic_name, parameters):
        poller = self.network_client.network_interfaces.begin_create_or_update(rg_name, nic_name, parameters)
        return poller.result()

    # ── Delete ─────────────────────────────────────────────────────
    # Deletes return the poller without waiting. Callers delete the VM
    # before its NICs, public IPs and disks.

    def delete_vm(self, rg_name, vm_name):
        return self.compute_client.virtual_machines.begin_delete(rg_name, vm_name)

    def delete_nic(self, rg_name, nic_name):
        return self.network_client.network_interfaces.begin_delete(rg_name, nic_name)

    def delete_public_ip(self, rg_name, pip_name):
        return self.network_client.public_ip_addresses.begin_delete(rg_name, pip_name)

    def delete_disk(self, rg_name, disk_name):
        return self.compute_client.disks.begin_delete(rg_name, disk_name)

    # ── Power state ────────────────────────────────────────────────

    def check_vm_status(self, rg_name, vm_name):
        """Return the VM's power state token (e.g. "running", "deallocated") or None."""
        virtual_machine = self.compute_client.virtual_machines.get(rg_name, vm_name, expand="instanceView")
        return parse_power_state(virtual_machine)

    def start_vm(self, rg_name, vm_name):
        return self.compute_client.virtual_machines.begin_start(rg_name, vm_name).result()

    def stop_vm(self, rg_name, vm_name):
        """Power off, then deallocate.

        The two calls are not atomic: if deallocation fails the VM stays
        powered off but its compute is still allocated (and billed).
        """
        self.compute_client.virtual_machines.begin_power_off(rg_name, vm_name).result()
        return self.compute_client.virtual_machines.begin_deallocate(rg_name, vm_name).result()
