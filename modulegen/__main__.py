# File: modulegen/__main__.py
"""
ModuleGen — Module entry point.

Allows running the generator directly via::

    python -m modulegen generate -f module/models.yaml

This module simply delegates to the CLI entry point defined in ``modulegen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from modulegen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
