"""Entropy source lookup and construction by config name.

Camera, microphone and other device drivers live outside this package and
plug in through the ``qcrypto_engine.entropy_sources`` entry-point group.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, ClassVar

from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.registry import PluginRegistry

if TYPE_CHECKING:
    from qcrypto_engine.config import EngineConfig


def _takes_config(source_cls: type) -> bool:
    """Whether the constructor's first parameter is the engine config.

    Matches an ``EngineConfig`` annotation or, when unannotated, a
    parameter named ``config``.
    """
    try:
        params = list(inspect.signature(source_cls).parameters.values())
    except (TypeError, ValueError):
        return False
    if not params:
        return False
    first = params[0]
    annotation = first.annotation
    if annotation is inspect.Parameter.empty:
        return first.name == "config"
    if not isinstance(annotation, str):
        annotation = getattr(annotation, "__name__", "")
    return "EngineConfig" in annotation


class EntropySourceRegistry(PluginRegistry):
    """Source classes keyed by ``entropy_source_type`` values."""

    kind: ClassVar[str] = "entropy source"
    plugin_base: ClassVar[type] = EntropySource
    entry_point_group: ClassVar[str | None] = "qcrypto_engine.entropy_sources"

    @classmethod
    def create(cls, name: str, config: EngineConfig) -> EntropySource:
        """Instantiate the source registered under *name*.

        Sources whose constructor takes the engine config receive it; the
        rest are built with no arguments.

        Raises:
            KeyError: If *name* is not registered.
        """
        source_cls = cls.get(name)
        if _takes_config(source_cls):
            return source_cls(config)
        return source_cls()


register_entropy_source = EntropySourceRegistry.register
