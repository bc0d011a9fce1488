"""Unit tests for the provisioning sequences: NICs, VM, extension, teardown."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError

from azprov.provisioning.azure import (
    create_managed_vm,
    create_nics,
    create_vm_extension,
    destroy_vm,
    nic_name,
    provision_vm,
    public_ip_name,
    resource_id,
    resource_name,
)
from azprov.provisioning.ssh import KeyPair
from azprov.provisioning.types import ConfigurationError, ExtensionSpec, NetworkInterfaceSpec, ProvisionRequest

KEY_PAIR = KeyPair(public="ssh-ed25519 AAAALOCAL azprov@host", private_key_path="/tmp/id_ed25519")
SUBNET = "/subscriptions/sub-id/resourceGroups/rg/providers/Microsoft.Network/virtualNetworks/vnet/subnets/default"


class RecordingGateway:
    """Stands in for AzureGateway and records the order of remote calls."""

    subscription_id = "sub-id"

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def _record(self, op, *args):
        self.calls.append((op, *args))
        if op == self.fail_on:
            raise HttpResponseError(message=f"{op} failed")

    def create_or_update_public_ip(self, rg, name, params):
        self._record("create_or_update_public_ip", rg, name)
        return SimpleNamespace(id=f"/pip/{name}", params=params)

    def create_or_update_nic(self, rg, name, params):
        self._record("create_or_update_nic", rg, name)
        return SimpleNamespace(id=f"/nic/{name}", params=params)

    def create_or_update_vm(self, rg, name, params):
        self._record("create_or_update_vm", rg, name)
        return SimpleNamespace(id=f"/vm/{name}", params=params)

    def create_or_update_vm_extension(self, rg, vm_name, ext_name, params):
        self._record("create_or_update_vm_extension", rg, vm_name, ext_name)
        return SimpleNamespace(params=params)


def _request(interfaces=(), **overrides):
    fields = {
        "name": "web01",
        "resource_group": "rg",
        "location": "westeurope",
        "vm_size": "Standard_B2s",
        "image": "Canonical:UbuntuServer:18.04-LTS:latest",
        "username": "azureuser",
        "interfaces": list(interfaces),
    }
    fields.update(overrides)
    return ProvisionRequest(**fields)


def _iface(index="0", public_ip="None", private_ip=None):
    return NetworkInterfaceSpec(index=index, subnet_id=SUBNET, private_ip=private_ip, public_ip=public_ip)


# ── Naming ────────────────────────────────────────────────────────


def test_resource_names():
    assert nic_name("web01", "0") == "web01-nic0"
    assert public_ip_name("web01", 1) == "web01-pip1"
    rid = resource_id("sub", "rg", "Microsoft.Network/networkInterfaces", "web01-nic0")
    assert rid == "/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Network/networkInterfaces/web01-nic0"
    assert resource_name(rid) == "web01-nic0"


# ── create_nics ───────────────────────────────────────────────────


def test_create_nics_without_public_ip():
    gw = RecordingGateway()
    nics = create_nics(gw, _request([_iface(public_ip="None")]))

    assert gw.calls == [("create_or_update_nic", "rg", "web01-nic0")]
    assert nics[0].params.ip_configurations[0].public_ip_address is None


@pytest.mark.parametrize("mode", ["Static", "Dynamic"])
def test_create_nics_public_ip_before_nic(mode):
    gw = RecordingGateway()
    nics = create_nics(gw, _request([_iface(public_ip=mode)]))

    assert gw.calls == [
        ("create_or_update_public_ip", "rg", "web01-pip0"),
        ("create_or_update_nic", "rg", "web01-nic0"),
    ]
    conf = nics[0].params.ip_configurations[0]
    assert conf.public_ip_address.id == "/pip/web01-pip0"
    assert conf.subnet.id == SUBNET


def test_create_nics_public_ip_allocation_method():
    gw = RecordingGateway()
    created = {}

    def _create_pip(rg, name, params):
        created[name] = params
        return SimpleNamespace(id=f"/pip/{name}")

    gw.create_or_update_public_ip = _create_pip
    create_nics(gw, _request([_iface(public_ip="Static")]))
    assert created["web01-pip0"].public_ip_allocation_method == "Static"
    assert created["web01-pip0"].location == "westeurope"


def test_create_nics_invalid_mode_fails_before_remote_calls():
    gw = RecordingGateway()
    bad = _iface(index="1")
    bad.public_ip = "Elastic"
    request = _request([_iface(index="0", public_ip="Static"), bad])

    with pytest.raises(ConfigurationError, match="Public IP value"):
        create_nics(gw, request)
    assert gw.calls == []


def test_create_nics_records_created_on_failure():
    gw = RecordingGateway(fail_on="create_or_update_nic")
    created = []
    with pytest.raises(HttpResponseError):
        create_nics(gw, _request([_iface(public_ip="Dynamic")]), created=created)
    assert created == ["/pip/web01-pip0"]


def test_create_nics_dry_run_makes_no_calls(caplog):
    gw = RecordingGateway()
    with caplog.at_level("INFO"):
        nics = create_nics(gw, _request([_iface(public_ip="Static")]), dry_run=True)

    assert gw.calls == []
    assert nics[0].id.endswith("/networkInterfaces/web01-nic0")
    assert "[dry-run] create public IP web01-pip0" in caplog.text
    assert "[dry-run] create NIC web01-nic0" in caplog.text


# ── create_managed_vm / create_vm_extension ──────────────────────


def test_create_managed_vm_submits_payload():
    gw = RecordingGateway()
    vm = create_managed_vm(gw, _request(network_interface_card_ids=["/nic/existing"]), KEY_PAIR)

    assert gw.calls == [("create_or_update_vm", "rg", "web01")]
    assert vm.params.storage_profile.image_reference.offer == "UbuntuServer"
    assert vm.params.network_profile.network_interfaces[0].id == "/nic/existing"


def test_create_managed_vm_bad_image_fails_before_remote_call():
    gw = RecordingGateway()
    with pytest.raises(ConfigurationError):
        create_managed_vm(gw, _request(image="Canonical:UbuntuServer"), KEY_PAIR)
    assert gw.calls == []


def test_create_vm_extension_skipped_without_script():
    gw = RecordingGateway()
    assert create_vm_extension(gw, _request(extension=ExtensionSpec())) is None
    assert create_vm_extension(gw, _request()) is None
    assert gw.calls == []


def test_create_vm_extension_fixed_name():
    gw = RecordingGateway()
    ext = create_vm_extension(gw, _request(extension=ExtensionSpec(script_command="echo hi")))
    assert gw.calls == [("create_or_update_vm_extension", "rg", "web01", "AzprovCustomScript")]
    assert ext.params.settings == {"commandToExecute": "echo hi", "fileUris": []}


# ── provision_vm ──────────────────────────────────────────────────


def test_provision_vm_order_and_nic_ids():
    gw = RecordingGateway()
    request = _request(
        [_iface("0", public_ip="Static"), _iface("1", private_ip="10.0.0.5")],
        extension=ExtensionSpec(script_command="echo hi"),
    )
    vm = provision_vm(gw, request, KEY_PAIR)

    assert [c[0] for c in gw.calls] == [
        "create_or_update_public_ip",
        "create_or_update_nic",
        "create_or_update_nic",
        "create_or_update_vm",
        "create_or_update_vm_extension",
    ]
    refs = vm.params.network_profile.network_interfaces
    assert [r.id for r in refs] == ["/nic/web01-nic0", "/nic/web01-nic1"]
    assert [r.primary for r in refs] == [True, False]


def test_provision_vm_logs_partial_failure_and_reraises(caplog):
    gw = RecordingGateway(fail_on="create_or_update_vm")
    request = _request([_iface(public_ip="Dynamic")])

    with caplog.at_level("ERROR"), pytest.raises(HttpResponseError, match="create_or_update_vm failed"):
        provision_vm(gw, request, KEY_PAIR)
    assert "/pip/web01-pip0" in caplog.text
    assert "/nic/web01-nic0" in caplog.text


def test_provision_vm_dry_run(caplog):
    gw = RecordingGateway()
    request = _request([_iface()], extension=ExtensionSpec(script_uris="https://x/run.sh"))
    with caplog.at_level("INFO"):
        assert provision_vm(gw, request, KEY_PAIR, dry_run=True) is None

    assert gw.calls == []
    assert "[dry-run] create VM web01" in caplog.text
    assert "[dry-run] create extension AzprovCustomScript" in caplog.text
    assert "https://x/run.sh" in caplog.text


# ── destroy_vm ────────────────────────────────────────────────────


def _mock_vm_gateway():
    gw = MagicMock()
    gw.get_vm.return_value = SimpleNamespace(
        network_profile=SimpleNamespace(network_interfaces=[SimpleNamespace(id="/x/networkInterfaces/web01-nic0")]),
        storage_profile=SimpleNamespace(os_disk=SimpleNamespace(name="web01-osdisk")),
    )
    gw.get_nic.return_value = SimpleNamespace(
        ip_configurations=[SimpleNamespace(public_ip_address=SimpleNamespace(id="/x/publicIPAddresses/web01-pip0"))]
    )
    return gw


def test_destroy_vm_deletes_vm_before_dependents():
    gw = _mock_vm_gateway()
    deleted = destroy_vm(gw, "rg", "web01")

    assert deleted == ["web01", "web01-nic0", "web01-pip0", "web01-osdisk"]
    ops = [c[0] for c in gw.mock_calls if c[0].startswith("delete_") and "()" not in c[0]]
    assert ops == ["delete_vm", "delete_nic", "delete_public_ip", "delete_disk"]
    gw.delete_vm.return_value.wait.assert_called_once()
    gw.get_nic.assert_called_once_with("rg", "web01-nic0")


def test_destroy_vm_dry_run(caplog):
    gw = MagicMock()
    with caplog.at_level("INFO"):
        assert destroy_vm(gw, "rg", "web01", dry_run=True) == []
    gw.get_vm.assert_not_called()
    assert "[dry-run] delete VM web01" in caplog.text
