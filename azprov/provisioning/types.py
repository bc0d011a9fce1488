"""Request value objects for Azure VM provisioning."""

from dataclasses import dataclass, field

PUBLIC_IP_MODES = ("Static", "Dynamic", "None")
EXTENSION_NAME = "AzprovCustomScript"


class ConfigurationError(ValueError):
    """Invalid provisioning input, raised before any remote call is made."""


@dataclass
class AzureCredentials:
    """Service-principal credential tuple."""

    tenant_id: str
    client_id: str
    client_secret: str
    subscription_id: str

    @property
    def complete(self) -> bool:
        return all([self.tenant_id, self.client_id, self.client_secret, self.subscription_id])


@dataclass
class NetworkInterfaceSpec:
    """One NIC to create for a VM.

    ``private_ip`` is the static private address; when it is None the
    private address is allocated dynamically. ``public_ip`` is one of
    Static, Dynamic or None (no public IP attached).
    """

    index: str
    subnet_id: str
    private_ip: str | None = None
    public_ip: str = "None"

    def __post_init__(self):
        if self.public_ip not in PUBLIC_IP_MODES:
            raise ConfigurationError(
                f"Public IP value must be either 'Dynamic', 'Static' or 'None' (got {self.public_ip!r})"
            )

    @property
    def private_ip_allocation(self) -> str:
        return "Static" if self.private_ip else "Dynamic"

    @classmethod
    def from_form(cls, index, attrs):
        """Build from a form entry like ``{"network": ..., "private_ip": "false", "public_ip": "Dynamic"}``.

        ``private_ip`` other than "false" requests a static address, which
        must then be given as ``ip``. ``public_ip`` has no default.
        """
        static = attrs.get("private_ip") != "false"
        if static and not attrs.get("ip"):
            raise ConfigurationError(f"Interface {index}: static private IP requested but no 'ip' address given")
        return cls(
            index=str(index),
            subnet_id=attrs.get("network", ""),
            private_ip=attrs.get("ip") if static else None,
            public_ip=attrs.get("public_ip"),
        )


@dataclass
class ExtensionSpec:
    """Custom-script extension to run on a freshly created VM."""

    script_command: str = ""
    script_uris: list[str] = field(default_factory=list)
    platform: str = "Linux"

    def __post_init__(self):
        if isinstance(self.script_uris, str):
            self.script_uris = [uri for uri in self.script_uris.split(",") if uri]
        elif self.script_uris is None:
            self.script_uris = []

    @property
    def present(self) -> bool:
        return bool(self.script_command or self.script_uris)


@dataclass
class ProvisionRequest:
    """Everything needed to create one managed-disk VM."""

    name: str
    resource_group: str
    location: str
    vm_size: str
    image: str
    username: str
    password: str | None = None
    platform: str = "Linux"
    ssh_key_data: str | None = None
    disable_password_authentication: bool = False
    custom_data: str | None = None
    os_disk_caching: str | None = None
    premium_os_disk: str = "false"
    network_interface_card_ids: list[str] = field(default_factory=list)
    interfaces: list[NetworkInterfaceSpec] = field(default_factory=list)
    availability_set_id: str | None = None
    extension: ExtensionSpec | None = None

    @property
    def os_disk_name(self) -> str:
        return f"{self.name}-osdisk"

    @classmethod
    def from_form(cls, form):
        """Build a request from the flat VM-definition mapping.

        ``interfaces_attributes`` is a mapping of index -> NIC attributes
        (or a list, indexed by position). Script fields, when present,
        become an ExtensionSpec for the same platform.
        """
        missing = [key for key in ("name", "resource_group", "location", "vm_size", "image", "username") if not form.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required field(s): {', '.join(missing)}")

        raw_interfaces = form.get("interfaces_attributes") or {}
        if isinstance(raw_interfaces, list):
            raw_interfaces = dict(enumerate(raw_interfaces))
        interfaces = [NetworkInterfaceSpec.from_form(idx, attrs) for idx, attrs in raw_interfaces.items()]

        platform = form.get("platform", "Linux")
        extension = None
        if form.get("script_command") or form.get("script_uris"):
            extension = ExtensionSpec(
                script_command=form.get("script_command") or "",
                script_uris=form.get("script_uris") or [],
                platform=platform,
            )

        return cls(
            name=form["name"],
            resource_group=form["resource_group"],
            location=form["location"],
            vm_size=form["vm_size"],
            image=form["image"],
            username=form["username"],
            password=form.get("password"),
            platform=platform,
            ssh_key_data=form.get("ssh_key_data"),
            disable_password_authentication=_truthy(form.get("disable_password_authentication", False)),
            custom_data=form.get("custom_data"),
            os_disk_caching=form.get("os_disk_caching"),
            premium_os_disk=_flag_string(form.get("premium_os_disk", "false")),
            network_interface_card_ids=list(form.get("network_interface_card_ids") or []),
            interfaces=interfaces,
            availability_set_id=form.get("availability_set_id"),
            extension=extension,
        )


def _truthy(value):
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes")
    return bool(value)


def _flag_string(value):
    # YAML booleans arrive as bool; the form sends strings
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
