"""Shared machinery for the name-to-class plugin registries.

Debiasers and entropy sources are both looked up by the string names used
in :class:`~qcrypto_engine.config.EngineConfig`. Each concrete registry
subclasses :class:`PluginRegistry`, names the base class its plugins must
derive from, and optionally an entry-point group from which other installed
distributions contribute plugins. Every subclass gets its own table.
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("qcrypto_engine")


class PluginRegistry:
    """Class-level table of plugin classes keyed by config name.

    Subclasses set:
        kind: Noun used in error messages (``"debiaser"``).
        plugin_base: Class every registered plugin must subclass.
        entry_point_group: Entry-point group scanned on the first miss, or
            ``None`` to disable discovery.
    """

    kind: ClassVar[str] = "plugin"
    plugin_base: ClassVar[type] = object
    entry_point_group: ClassVar[str | None] = None

    _plugins: ClassVar[dict[str, type[Any]]]
    _discovered: ClassVar[bool]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._plugins = {}
        cls._discovered = cls.entry_point_group is None

    @classmethod
    def register(cls, name: str) -> Callable[[type[Any]], type[Any]]:
        """Decorator that files a plugin class under *name*.

        Re-registering the same class is a no-op, so reloading a module is
        harmless.

        Raises:
            TypeError: If the class does not derive from ``plugin_base``.
            ValueError: If *name* already belongs to a different class.
        """

        def decorator(klass: type[Any]) -> type[Any]:
            cls._add(name, klass)
            return klass

        return decorator

    @classmethod
    def _add(cls, name: str, klass: type[Any]) -> None:
        if not (isinstance(klass, type) and issubclass(klass, cls.plugin_base)):
            raise TypeError(
                f"{cls.kind.capitalize()} '{name}' must subclass {cls.plugin_base.__name__}, "
                f"got {klass!r}"
            )
        existing = cls._plugins.get(name)
        if existing is not None and existing is not klass:
            raise ValueError(f"{cls.kind.capitalize()} '{name}' is already registered")
        cls._plugins[name] = klass

    @classmethod
    def get(cls, name: str) -> type[Any]:
        """Return the class registered under *name*.

        Raises:
            KeyError: If *name* is unknown after entry-point discovery. The
                message lists the known names.
        """
        if name not in cls._plugins:
            cls._discover()
        try:
            return cls._plugins[name]
        except KeyError:
            available = ", ".join(sorted(cls._plugins)) or "(none)"
            raise KeyError(
                f"Unknown {cls.kind} '{name}'. Available: {available}"
            ) from None

    @classmethod
    def list_registered(cls) -> list[str]:
        """Sorted names, including discovered plugins."""
        cls._discover()
        return sorted(cls._plugins)

    @classmethod
    def _discover(cls) -> None:
        """Load the entry-point group once; bad plugins are logged and skipped."""
        if cls._discovered:
            return
        cls._discovered = True
        for ep in importlib.metadata.entry_points(group=cls.entry_point_group):
            if ep.name in cls._plugins:
                continue
            try:
                cls._add(ep.name, ep.load())
            except Exception:  # Intentional: one bad plugin must not block others
                logger.warning(
                    "Skipping %s plugin %r (%s)", cls.kind, ep.name, ep.value, exc_info=True
                )
            else:
                logger.debug("Discovered %s plugin %r", cls.kind, ep.name)

    @classmethod
    def _reset(cls) -> None:
        """Forget all plugins. **Test-only**."""
        cls._plugins.clear()
        cls._discovered = cls.entry_point_group is None
