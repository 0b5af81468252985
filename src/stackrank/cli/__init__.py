"""Command-line interface for the ranking engine."""

from stackrank.cli.main import cli


__all__ = ["cli"]
