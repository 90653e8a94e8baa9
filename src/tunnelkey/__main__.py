"""
Main entry point for running tunnelkey as a module.

Usage:
    python -m tunnelkey resolve ss://...
    python -m tunnelkey resolve https://keys.example.com/abc --json
"""

from .cli import cli

if __name__ == "__main__":
    cli()
