"""
Command-line interface for willknow.
"""

from willknow.cli.main import cli, main

__all__ = ["cli", "main"]
