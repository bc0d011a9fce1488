"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest
import yaml

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

_AZURE_ENV_VARS = ["AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET", "AZURE_SUBSCRIPTION_ID"]


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(autouse=True)
def clean_azure_env(monkeypatch):
    """Keep real service-principal credentials out of unit tests."""
    for var in _AZURE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def run_cli(project_root, tmp_path):
    """Return a callable that invokes the azprov CLI as a subprocess.

    Runs in tmp_path so no azprov.yaml from the checkout is picked up.
    """

    def _run(*args, env=None):
        run_env = {k: v for k, v in os.environ.items() if k not in _AZURE_ENV_VARS}
        run_env["PYTHONPATH"] = os.pathsep.join(filter(None, [project_root, os.environ.get("PYTHONPATH")]))
        run_env.update(env or {})
        result = subprocess.run(
            [sys.executable, "-m", "azprov.azprov", *args],
            capture_output=True,
            text=True,
            cwd=str(tmp_path),
            env=run_env,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def vm_form():
    """A flat VM-definition mapping as the orchestrator would send it."""
    return {
        "name": "web01",
        "resource_group": "rg-test",
        "location": "westeurope",
        "vm_size": "Standard_B2s",
        "image": "Canonical:UbuntuServer:18.04-LTS:latest",
        "username": "azureuser",
        "password": "Sup3r-Secret-Passw0rd",
        "os_disk_caching": "ReadOnly",
        "premium_os_disk": "true",
        "interfaces_attributes": {
            "0": {
                "network": "/subscriptions/sub/resourceGroups/rg-test/providers/Microsoft.Network/virtualNetworks/vnet/subnets/default",
                "public_ip": "Static",
                "private_ip": "false",
            }
        },
        "script_command": "echo provisioned",
        "script_uris": "https://example.com/setup.sh",
    }


@pytest.fixture
def write_yaml(tmp_path):
    """Return a helper that dumps a mapping to a YAML file under tmp_path."""

    def _write(name, data):
        path = tmp_path / name
        with open(path, "w") as f:
            yaml.dump(data, f)
        return str(path)

    return _write
