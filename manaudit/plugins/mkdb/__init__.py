"""Registry ingestion plugin package.

Importing ``manaudit.plugins.mkdb`` registers :class:`MkdbPlugin` via the
``@register_plugin`` decorator.
"""

from .plugin import MkdbPlugin

__all__ = ["MkdbPlugin"]
