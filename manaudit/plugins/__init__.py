"""Plugin registration and discovery."""

from __future__ import annotations

from manaudit.plugins.base import PluginBase

# Registry of all available plugins
_PLUGIN_REGISTRY: list[type[PluginBase]] = []


def register_plugin(plugin_class: type[PluginBase]) -> type[PluginBase]:
    """
    Decorator to register a plugin class.

    Args:
        plugin_class: Plugin class to register

    Returns:
        The same plugin class (for use as decorator)
    """
    _PLUGIN_REGISTRY.append(plugin_class)
    return plugin_class


def get_all_plugins() -> list[type[PluginBase]]:
    """
    Get all registered plugins.

    Returns:
        List of plugin classes
    """
    return _PLUGIN_REGISTRY.copy()


def discover_plugins() -> None:
    """
    Discover and import all plugins.

    Importing a plugin module triggers its registration. Modules that are
    not present are skipped; any other import error propagates.
    """
    import importlib.util

    plugin_modules = [
        "manaudit.plugins.mkdb",
        "manaudit.plugins.conflicts",
        "manaudit.plugins.simulate",
        "manaudit.plugins.kinds",
    ]

    for module_name in plugin_modules:
        spec = importlib.util.find_spec(module_name)
        if spec is not None:
            __import__(module_name)


__all__ = ["PluginBase", "register_plugin", "get_all_plugins", "discover_plugins"]
