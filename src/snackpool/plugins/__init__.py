"""Extension layer: lifecycle hooks via pluggy.

Plugins are discovered from the ``snackpool.plugins`` entry-point group
and from single-file modules in ``.snackpool/plugins/``.
INVARIANT: Plugin failures are warnings, never errors.
"""

from snackpool.plugins.event_bus import EventBus
from snackpool.plugins.manager import PluginManager

__all__ = ["EventBus", "PluginManager"]
