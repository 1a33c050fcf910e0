"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import VimshModalCLI, main

__all__ = ['VimshModalCLI', 'main']
