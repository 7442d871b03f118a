"""Page kind and cross-reference audit plugin package.

Importing ``manaudit.plugins.kinds`` registers :class:`KindsPlugin` via the
``@register_plugin`` decorator.
"""

from .plugin import KindsPlugin

__all__ = ["KindsPlugin"]
