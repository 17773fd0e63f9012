"""Operator command-line tools for FamilyOS."""

from .main import cli

__all__ = ["cli"]
