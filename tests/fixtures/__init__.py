"""Test fixtures for registries, manifests and manual page trees.

This package provides builders that create test inputs programmatically
instead of relying on a real package repository or source tree.
"""

from __future__ import annotations

from .corpus_builder import ManifestBuilder, ManTreeBuilder, roff_page, write_registry

__all__ = [
    "ManifestBuilder",
    "ManTreeBuilder",
    "roff_page",
    "write_registry",
]
