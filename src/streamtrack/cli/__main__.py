"""
CLI entry point for streamtrack.cli module.

This allows running: python -m streamtrack.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
