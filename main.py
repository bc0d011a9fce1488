#!/usr/bin/env python3
"""Azure VM provisioning tools — CLI entrypoint."""

from azprov.azprov import main

if __name__ == "__main__":
    main()
