"""Extension layer — plugin system via pluggy.

Discovery: entry points in the ``polyface.plugins`` group.
INVARIANT: Plugin failures are warnings, never errors.
"""

from polyface.plugins.manager import PluginManager

__all__ = ["PluginManager"]
