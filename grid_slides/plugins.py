"""
Element plugin registry.

A plugin is a Python file exposing ``register(registry)``. Inside it, the
plugin may add:

* element parsers – keyed by markdown-it node type (``paragraph``,
  ``fence``, ...); called before the built-in conversion and may return an
  :class:`~grid_slides.models.Element` or ``None`` to fall through,
* element generators – keyed by element type; called by the PPTX renderer
  instead of the built-in drawing code,
* size estimates for new element types (rows / column ratio),
* hooks: ``on_parse(document)`` and ``on_generate(presentation)``.

Example::

    def register(registry):
        registry.register_element_parser("paragraph", parse_callout)
        registry.register_element_generator("callout", draw_callout)
        registry.register_element_size("callout", height=2, width_ratio=0.5)
"""
from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .auto_layout import SizeTable

logger = logging.getLogger(__name__)

HOOK_NAMES = ("on_parse", "on_generate")

ElementParser = Callable[..., Any]
ElementGenerator = Callable[..., Any]


@dataclass
class Plugin:
    name: str
    version: str = "0.0.0"
    description: str = ""
    path: Optional[Path] = None


@dataclass
class PluginRegistry:
    """Maps node / element type tags to plugin callables."""
    plugins: List[Plugin] = field(default_factory=list)
    _element_parsers: Dict[str, ElementParser] = field(default_factory=dict)
    _element_generators: Dict[str, ElementGenerator] = field(default_factory=dict)
    _hooks: Dict[str, List[Callable]] = field(default_factory=lambda: {name: [] for name in HOOK_NAMES})
    sizes: SizeTable = field(default_factory=SizeTable)

    def register_element_parser(self, node_type: str, parser: ElementParser) -> None:
        self._element_parsers[node_type] = parser

    def register_element_generator(self, element_type: str, generator: ElementGenerator) -> None:
        self._element_generators[element_type] = generator

    def register_element_size(self, element_type: str, height: Optional[int] = None,
                              width_ratio: Optional[float] = None) -> None:
        self.sizes.register(element_type, height=height, width_ratio=width_ratio)

    def add_hook(self, name: str, func: Callable) -> None:
        if name not in self._hooks:
            raise ValueError(f"Unknown hook '{name}'. Available hooks: {', '.join(HOOK_NAMES)}")
        self._hooks[name].append(func)

    def get_element_parser(self, node_type: str) -> Optional[ElementParser]:
        return self._element_parsers.get(node_type)

    def get_element_generator(self, element_type: str) -> Optional[ElementGenerator]:
        return self._element_generators.get(element_type)

    def run_hook(self, name: str, value):
        """
        Pass ``value`` through every hook registered under ``name``.

        A hook returning something other than ``None`` replaces the value.
        A failing hook is logged and skipped.
        """
        for func in self._hooks.get(name, []):
            try:
                result = func(value)
            except Exception as exc:
                logger.error("Plugin hook %s (%s) failed: %s", name, getattr(func, "__name__", func), exc)
                continue
            if result is not None:
                value = result
        return value

    def load_plugin(self, path: Path) -> Optional[Plugin]:
        """Import a single plugin file and call its ``register`` function."""
        module_name = f"grid_slides_plugin_{path.stem}"
        try:
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                logger.warning("Cannot import plugin %s", path)
                return None
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
        except Exception as exc:
            logger.error("Failed to load plugin %s: %s", path.name, exc)
            return None

        register = getattr(module, "register", None)
        if not callable(register):
            logger.warning("Invalid plugin %s: no register(registry) function", path.name)
            return None

        try:
            register(self)
        except Exception as exc:
            logger.error("Plugin %s failed to register: %s", path.name, exc)
            return None

        plugin = Plugin(
            name=getattr(module, "PLUGIN_NAME", path.stem),
            version=getattr(module, "__version__", "0.0.0"),
            description=(module.__doc__ or "").strip().split("\n")[0],
            path=path,
        )
        self.plugins.append(plugin)
        logger.info("Loaded plugin: %s", plugin.name)
        return plugin

    def load_plugins(self, plugin_dir) -> List[Plugin]:
        """Load every ``*.py`` file of ``plugin_dir`` (sorted by name)."""
        directory = Path(plugin_dir)
        if not directory.is_dir():
            logger.debug("Plugin directory does not exist: %s", directory)
            return []

        loaded = []
        for path in sorted(directory.glob("*.py")):
            if path.name.startswith("_"):
                continue
            plugin = self.load_plugin(path)
            if plugin is not None:
                loaded.append(plugin)
        return loaded


default_registry = PluginRegistry()
