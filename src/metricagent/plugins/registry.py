"""
Plugin discovery and instantiation.

Plugins come from two places: the built-in psutil sources shipped with the
package, and `*.py` modules in an optional plugin directory. Each module may
define any number of concrete `MetricPlugin` subclasses.
"""

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

from ..executor import CallGuard
from ..models.plugin import PluginDescriptor
from ..validation import ErrorSeverity, PluginInitError, handle_plugin_error
from .base import MetricPlugin

logger = logging.getLogger(__name__)

PluginFactory = Callable[[], MetricPlugin]

# Prefix of the sys.modules names given to directory plugins.
PLUGIN_MODULE_PREFIX = "metricagent_plugins"


def get_builtin_factories() -> List[PluginFactory]:
    """Return the factories for the built-in metric sources."""
    from .builtin import BUILTIN_PLUGINS

    return list(BUILTIN_PLUGINS)


def load_plugin_module(module_path: Path):
    """
    Import a plugin module from a file path.

    The module is executed afresh on every call so that a configuration
    reload also picks up edited plugin code.

    Raises:
        PluginInitError: If the module cannot be loaded or raises on import
    """
    module_name = f"{PLUGIN_MODULE_PREFIX}_{module_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if spec is None or spec.loader is None:
        raise PluginInitError(f"Failed to load plugin module {module_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise PluginInitError(f"Failed to import plugin module {module_path}: {e}") from e
    return module


def find_plugin_classes(module) -> List[PluginFactory]:
    """Return the concrete MetricPlugin subclasses defined in `module`, in definition order."""
    return [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj)
        and issubclass(obj, MetricPlugin)
        and obj is not MetricPlugin
        and obj.__module__ == module.__name__
        and not inspect.isabstract(obj)
    ]


def discover(plugin_directory: Optional[Path] = None, include_builtin: bool = True) -> List[PluginFactory]:
    """
    Enumerate plugin factories.

    Built-in factories come first (unless excluded), followed by plugins from
    `plugin_directory` in filename order. Files starting with an underscore
    are skipped. A module that fails to import is reported and skipped.

    Args:
        plugin_directory: Directory of additional plugin modules, or None
        include_builtin: Whether to include the built-in psutil sources

    Returns:
        Plugin factories in registry order
    """
    factories: List[PluginFactory] = []
    if include_builtin:
        factories.extend(get_builtin_factories())

    if plugin_directory is None:
        return factories

    plugin_directory = Path(plugin_directory)
    if not plugin_directory.is_dir():
        logger.warning(f"Plugin directory does not exist: {plugin_directory}")
        return factories

    for module_path in sorted(plugin_directory.glob("*.py")):
        if module_path.name.startswith("_"):
            continue
        try:
            module = load_plugin_module(module_path)
        except PluginInitError as e:
            handle_plugin_error(
                error=e,
                plugin_name=module_path.stem,
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger,
            )
            continue

        classes = find_plugin_classes(module)
        if not classes:
            logger.warning(f"No MetricPlugin subclasses found in {module_path}")
        factories.extend(classes)

    logger.info(f"Discovered {len(factories)} plugin factor{'y' if len(factories) == 1 else 'ies'}")
    return factories


def _construct(factory: PluginFactory) -> Tuple[MetricPlugin, PluginDescriptor]:
    plugin = factory()
    descriptor = plugin.init()
    return plugin, descriptor


def instantiate_all(
    factories: List[PluginFactory],
    call_guard: Optional[CallGuard] = None,
    timeout: float = 10.0,
) -> List[MetricPlugin]:
    """
    Construct every plugin and call its `init()` exactly once.

    Construction and `init()` run under `call_guard` with `timeout`, so a
    plugin that blocks while starting up is abandoned. A plugin whose
    construction or `init()` fails or times out, or whose name duplicates
    an earlier plugin, is reported and left out; the others proceed.

    Args:
        factories: Factories in registry order
        call_guard: Timeout boundary, a private one is created when omitted
        timeout: Seconds allowed for each plugin's construction and init()

    Returns:
        Initialized plugins in registry order
    """
    call_guard = call_guard or CallGuard()
    plugins: List[MetricPlugin] = []
    seen_names: Set[str] = set()

    for factory in factories:
        factory_name = getattr(factory, "__name__", repr(factory))
        try:
            try:
                plugin, descriptor = call_guard.call(_construct, timeout, factory, call_key=factory)
            except PluginInitError:
                raise
            except Exception as e:
                raise PluginInitError(
                    f"{factory_name} failed to initialize: {type(e).__name__}: {e}",
                    plugin_name=factory_name,
                ) from e

            if descriptor.plugin_name in seen_names:
                raise PluginInitError(
                    f"Duplicate plugin name '{descriptor.plugin_name}' from {factory_name}",
                    plugin_name=descriptor.plugin_name,
                )
        except PluginInitError as e:
            handle_plugin_error(
                error=e,
                plugin_name=e.plugin_name or factory_name,
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger,
            )
            continue

        seen_names.add(descriptor.plugin_name)
        plugins.append(plugin)

    logger.info(f"Initialized {len(plugins)} of {len(factories)} plugin(s)")
    return plugins
