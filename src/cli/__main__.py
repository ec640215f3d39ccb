#!/usr/bin/env python3
"""Main CLI entry point for the access stack installer."""

from .installer import main

if __name__ == "__main__":
    main(prog_name="cloudvrm-installer")
