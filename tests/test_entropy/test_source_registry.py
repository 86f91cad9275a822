"""Tests for EntropySourceRegistry lookup, construction and plugin discovery."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from conftest import make_config

from qcrypto_engine.config import EngineConfig
from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.entropy.mock import MockBernoulliSource
from qcrypto_engine.entropy.registry import EntropySourceRegistry
from qcrypto_engine.entropy.system import SystemEntropySource


class _PluginSource(EntropySource):
    """Test double standing in for a third-party device driver."""

    @property
    def name(self) -> str:
        return "plugin"

    @property
    def is_available(self) -> bool:
        return True

    def sample(self, num_bits: int) -> np.ndarray:
        return np.zeros(num_bits, dtype=np.uint8)

    def close(self) -> None:
        pass


class _ConfiguredSource(_PluginSource):
    """Test double whose constructor takes the engine config."""

    def __init__(self, config: EngineConfig) -> None:
        self.config = config


def _entry_point(name: str, loaded: object) -> MagicMock:
    ep = MagicMock()
    ep.name = name
    ep.value = f"vendor.sources:{name}"
    if isinstance(loaded, BaseException):
        ep.load.side_effect = loaded
    else:
        ep.load.return_value = loaded
    return ep


@pytest.fixture
def isolated_registry() -> Iterator[None]:
    """Snapshot the table so tests can add, discover or clear entries."""
    saved = dict(EntropySourceRegistry._plugins)
    discovered = EntropySourceRegistry._discovered
    yield
    EntropySourceRegistry._plugins.clear()
    EntropySourceRegistry._plugins.update(saved)
    EntropySourceRegistry._discovered = discovered


class TestBuiltins:
    """Tests for sources registered at import time."""

    def test_builtins_present(self) -> None:
        available = EntropySourceRegistry.list_registered()
        for name in ("system", "mock_bernoulli", "remote_grpc"):
            assert name in available

    def test_get_system(self) -> None:
        assert EntropySourceRegistry.get("system") is SystemEntropySource

    def test_create_without_config_argument(self) -> None:
        source = EntropySourceRegistry.create("mock_bernoulli", make_config())
        assert isinstance(source, MockBernoulliSource)


@pytest.mark.usefixtures("isolated_registry")
class TestRegistration:
    """Tests for decorator registration, construction and lookup failures."""

    def test_register_decorator(self) -> None:
        EntropySourceRegistry.register("plugin")(_PluginSource)
        assert EntropySourceRegistry.get("plugin") is _PluginSource

    def test_reregistering_same_class_is_noop(self) -> None:
        EntropySourceRegistry.register("plugin")(_PluginSource)
        EntropySourceRegistry.register("plugin")(_PluginSource)
        assert EntropySourceRegistry.get("plugin") is _PluginSource

    def test_name_clash_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):
            EntropySourceRegistry.register("system")(_PluginSource)

    def test_non_source_rejected(self) -> None:
        with pytest.raises(TypeError, match="EntropySource"):
            EntropySourceRegistry.register("bogus")(dict)

    def test_create_passes_config(self) -> None:
        EntropySourceRegistry.register("configured")(_ConfiguredSource)
        config = make_config(batch_bits=512)
        source = EntropySourceRegistry.create("configured", config)
        assert isinstance(source, _ConfiguredSource)
        assert source.config is config

    def test_unknown_name_lists_available(self) -> None:
        with pytest.raises(KeyError, match="system"):
            EntropySourceRegistry.get("webcam_that_does_not_exist")


@pytest.mark.usefixtures("isolated_registry")
class TestDiscovery:
    """Tests for the ``qcrypto_engine.entropy_sources`` entry-point group."""

    def test_entry_point_loaded_on_miss(self) -> None:
        EntropySourceRegistry._discovered = False
        with patch(
            "importlib.metadata.entry_points",
            return_value=[_entry_point("plugin", _PluginSource)],
        ) as entry_points:
            assert EntropySourceRegistry.get("plugin") is _PluginSource
        entry_points.assert_called_once_with(group="qcrypto_engine.entropy_sources")

    def test_discovery_runs_once(self) -> None:
        EntropySourceRegistry._discovered = False
        with patch("importlib.metadata.entry_points", return_value=[]) as entry_points:
            with pytest.raises(KeyError):
                EntropySourceRegistry.get("plugin")
            with pytest.raises(KeyError):
                EntropySourceRegistry.get("plugin")
        assert entry_points.call_count == 1

    def test_builtin_not_shadowed(self) -> None:
        EntropySourceRegistry._discovered = False
        with patch(
            "importlib.metadata.entry_points",
            return_value=[_entry_point("system", _PluginSource)],
        ):
            EntropySourceRegistry.list_registered()
        assert EntropySourceRegistry.get("system") is SystemEntropySource

    def test_broken_plugin_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        EntropySourceRegistry._discovered = False
        with patch(
            "importlib.metadata.entry_points",
            return_value=[
                _entry_point("broken", ImportError("no module")),
                _entry_point("not_a_source", dict),
                _entry_point("plugin", _PluginSource),
            ],
        ):
            assert "plugin" in EntropySourceRegistry.list_registered()
        assert "broken" not in EntropySourceRegistry.list_registered()
        assert "not_a_source" not in EntropySourceRegistry.list_registered()
        assert "Skipping entropy source plugin 'broken'" in caplog.text

    def test_reset_clears(self) -> None:
        EntropySourceRegistry._reset()
        assert EntropySourceRegistry._plugins == {}
        assert not EntropySourceRegistry._discovered
