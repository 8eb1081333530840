"""Command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``gkesa`` script).
"""

from gkesa.cli.main import cli

__all__ = ["cli"]
