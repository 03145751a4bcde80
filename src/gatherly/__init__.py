"""Gatherly activity tool engine."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__", "main"]


def main() -> None:
    from .cli import main as cli_main

    cli_main()
