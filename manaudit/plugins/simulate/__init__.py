"""Section renumbering simulation plugin package.

Importing ``manaudit.plugins.simulate`` registers :class:`SimulatePlugin` via the
``@register_plugin`` decorator.
"""

from .plugin import SimulatePlugin

__all__ = ["SimulatePlugin"]
