"""Command line interface for parts, built on click."""
from .interface import main_cli_group

__all__ = ["main_cli_group"]
