"""CLI logging setup: plain %(message)s to stdout, verbose adds levels."""

import logging
import sys

from azprov.redact import SecretRedactingFilter

# The Azure SDK logs every HTTP request at INFO
_NOISY_LOGGERS = ["azure", "azure.core.pipeline.policies.http_logging_policy", "azure.identity", "msal"]


def setup_cli_logging(verbose=False):
    """Configure the root logger for CLI commands.

    Produces output identical to print() by default. With verbose=True,
    DEBUG records are shown with level and logger name, including the
    Azure SDK's own request logging.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(levelname)s %(name)s: %(message)s" if verbose else "%(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
