"""Debiaser lookup by the ``debiaser_type`` config name."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from qcrypto_engine.conditioning.base import Debiaser
from qcrypto_engine.registry import PluginRegistry

if TYPE_CHECKING:
    from qcrypto_engine.config import EngineConfig


class DebiaserRegistry(PluginRegistry):
    """Built-ins register at import; others via ``qcrypto_engine.debiasers``."""

    kind: ClassVar[str] = "debiaser"
    plugin_base: ClassVar[type] = Debiaser
    entry_point_group: ClassVar[str | None] = "qcrypto_engine.debiasers"

    @classmethod
    def build(cls, config: EngineConfig) -> Debiaser:
        """Instantiate the debiaser named by ``config.debiaser_type``."""
        return cls.get(config.debiaser_type)()
