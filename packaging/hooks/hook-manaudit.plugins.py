"""Hook to pull in every manaudit.plugins submodule for PyInstaller.

Plugins are imported by name at runtime, so the analysis cannot see them.
"""

from PyInstaller.utils.hooks import collect_submodules

hiddenimports = collect_submodules("manaudit.plugins")
