"""Configuration loading: azprov.yaml, environment fallback, request files."""

import logging
import os

import yaml

from azprov.provisioning.ssh import DEFAULT_SSH_KEY
from azprov.provisioning.types import AzureCredentials, ConfigurationError, ProvisionRequest
from azprov.redact import register_secret

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "azprov.yaml"

# config key -> environment variable used when the key is absent
_CREDENTIAL_ENV_VARS = {
    "tenant_id": "AZURE_TENANT_ID",
    "client_id": "AZURE_CLIENT_ID",
    "client_secret": "AZURE_CLIENT_SECRET",
    "subscription_id": "AZURE_SUBSCRIPTION_ID",
}


def _read_yaml(path):
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML file '{path}': {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of '{path}'")
    return data


def load_config(config_path=None):
    """Load the azprov config file.

    An explicit path must exist. Without one, azprov.yaml in the working
    directory is used if present; otherwise the config is empty and
    everything comes from the environment.
    """
    if config_path is None:
        if not os.path.exists(DEFAULT_CONFIG_PATH):
            return {}
        config_path = DEFAULT_CONFIG_PATH
    elif not os.path.exists(config_path):
        raise ConfigurationError(f"Config file '{config_path}' not found.")

    config = _read_yaml(config_path)
    azure = config.get("azure") or {}
    if not isinstance(azure, dict):
        raise ConfigurationError("'azure' section must be a mapping")
    register_secret(azure.get("client_secret"))
    return config


def azure_section(config):
    return config.get("azure") or {}


def resolve_credentials(config, required=True):
    """Service-principal credentials from the config, falling back to env vars.

    Raises:
        ConfigurationError: if required and any of the four values is missing.
    """
    azure = azure_section(config)
    values = {key: azure.get(key) or os.environ.get(env_var, "") for key, env_var in _CREDENTIAL_ENV_VARS.items()}
    credentials = AzureCredentials(**values)

    if required and not credentials.complete:
        missing = [
            f"{key} ({_CREDENTIAL_ENV_VARS[key]})" for key, value in values.items() if not value
        ]
        raise ConfigurationError(f"Missing Azure credentials: {', '.join(missing)}")
    return credentials


def resolve_ssh_key(config, override=None):
    return override or azure_section(config).get("ssh_key") or DEFAULT_SSH_KEY


def load_request(request_path, config=None):
    """Load a ProvisionRequest from a YAML VM-definition file.

    resource_group and location default to the config's azure section.
    """
    if not os.path.exists(request_path):
        raise ConfigurationError(f"Request file '{request_path}' not found.")

    form = _read_yaml(request_path)
    azure = azure_section(config or {})
    for key in ("resource_group", "location"):
        if not form.get(key) and azure.get(key):
            form[key] = azure[key]

    register_secret(form.get("password"))
    return ProvisionRequest.from_form(form)
