"""Keep service-principal secrets and VM admin passwords out of azprov's logs.

Dry-run mode dumps full request payloads, and an OSProfile payload carries
``admin_password`` in clear text. Every value known to be secret is masked
as ``***`` before a record reaches the console.

Secrets come from two places: the environment (``AZURE_CLIENT_SECRET`` and
friends) and values the config loader registers while reading the
credentials file and VM definition.
"""

import logging
import os
import re

_SECRET_ENV_VARS = [
    "AZURE_CLIENT_SECRET",
    "AZURE_CLIENT_CERTIFICATE_PASSWORD",
    "AZPROV_ADMIN_PASSWORD",
]

# Shorter values would mask ordinary words in resource names.
_MIN_SECRET_LENGTH = 8

_registered: set[str] = set()

# Rebuilt on the next lookup after register_secret().
_patterns: list[re.Pattern] | None = None


def _known_secrets() -> set[str]:
    candidates = set(_registered)
    candidates.update(os.environ.get(var, "") for var in _SECRET_ENV_VARS)
    return {value for value in candidates if len(value) >= _MIN_SECRET_LENGTH}


def _get_patterns() -> list[re.Pattern]:
    global _patterns
    if _patterns is None:
        # A password that contains another secret must be masked whole.
        ordered = sorted(_known_secrets(), key=len, reverse=True)
        _patterns = [re.compile(re.escape(value)) for value in ordered]
    return _patterns


def register_secret(value: str | None) -> None:
    """Mask *value* in everything logged from now on. Empty values are ignored."""
    global _patterns
    if value:
        _registered.add(value)
        _patterns = None


def redact_secrets(text: str) -> str:
    return _mask(text, _get_patterns())


def _mask(text: str, patterns: list[re.Pattern]) -> str:
    for pattern in patterns:
        text = pattern.sub("***", text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Mask credentials in records before the CLI handler writes them.

    azprov logs with f-strings, so the secret is usually already inside
    ``record.msg``. Library loggers (azure-identity, azure-core) use
    %-style arguments, which are masked too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        patterns = _get_patterns()
        if not patterns:
            return True
        record.msg = _mask(str(record.msg), patterns)
        if isinstance(record.args, dict):
            record.args = {key: _mask(arg, patterns) if isinstance(arg, str) else arg for key, arg in record.args.items()}
        elif isinstance(record.args, tuple):
            record.args = tuple(_mask(arg, patterns) if isinstance(arg, str) else arg for arg in record.args)
        return True
