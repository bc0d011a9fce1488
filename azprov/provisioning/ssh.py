"""Local SSH key pair whose public half is authorized on every created VM."""

import logging
import os
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from azprov.provisioning.types import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SSH_KEY = "~/.ssh/id_ed25519"


@dataclass
class KeyPair:
    """Public key material plus the path of the matching private key."""

    public: str
    private_key_path: str


def generate_key_pair(ssh_key_path):
    """Write a new ed25519 key pair to *ssh_key_path* and *ssh_key_path*.pub."""
    private_key = ed25519.Ed25519PrivateKey.generate()
    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )

    os.makedirs(os.path.dirname(ssh_key_path) or ".", exist_ok=True)
    fd = os.open(ssh_key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(private_bytes)
    with open(f"{ssh_key_path}.pub", "wb") as f:
        f.write(public_bytes + b"\n")

    logger.info(f"Generated SSH key pair {ssh_key_path}")
    return public_bytes.decode()


def load_key_pair(ssh_key_path=DEFAULT_SSH_KEY, generate=False):
    """Load the key pair at *ssh_key_path* (private) and *ssh_key_path*.pub.

    Args:
        generate: create a new ed25519 pair when the public key is missing.

    Raises:
        ConfigurationError: if the public key is missing and generate is False.
    """
    ssh_key_path = os.path.expanduser(ssh_key_path)
    pub_key_path = f"{ssh_key_path}.pub"

    if not os.path.exists(pub_key_path):
        if not generate:
            raise ConfigurationError(f"SSH public key not found: {pub_key_path}")
        public = generate_key_pair(ssh_key_path)
    else:
        with open(pub_key_path) as f:
            public = f.read()

    return KeyPair(public=public.strip(), private_key_path=ssh_key_path)
