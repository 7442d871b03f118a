"""Section family conflict report plugin package.

Importing ``manaudit.plugins.conflicts`` registers :class:`ConflictsPlugin` via the
``@register_plugin`` decorator.
"""

from .plugin import ConflictsPlugin

__all__ = ["ConflictsPlugin"]
