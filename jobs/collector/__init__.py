"""Colector de la nube de dispositivos como proceso standalone.

Modules:
- cli: CLI entry point (main)
"""

from .cli import main

__all__ = ["main"]
