"""Tests for the Von Neumann debiaser, the other built-ins and the registry."""

from __future__ import annotations

from unittest.mock import patch

import numpy as np
import pytest
from conftest import make_config

from qcrypto_engine.conditioning import (
    Debiaser,
    DebiaserRegistry,
    HashDebiaser,
    PassThroughDebiaser,
    VonNeumannDebiaser,
    von_neumann_debias,
)
from qcrypto_engine.entropy.registry import EntropySourceRegistry


class TestVonNeumann:
    """Tests for pairwise Von Neumann extraction."""

    def test_unequal_pairs_emit_first_bit(self) -> None:
        """(0,1) -> 0 and (1,0) -> 1; equal pairs are dropped."""
        bits = np.array([0, 1, 1, 0, 1, 1, 0, 0], dtype=np.uint8)
        assert von_neumann_debias(bits).tolist() == [0, 1]

    def test_trailing_odd_bit_ignored(self) -> None:
        assert von_neumann_debias(np.array([1, 0, 1])).tolist() == [1]

    def test_output_at_most_half(self) -> None:
        rng = np.random.default_rng(0)
        bits = rng.integers(0, 2, 1001)
        assert von_neumann_debias(bits).size <= 500

    def test_short_input_returned_unchanged(self) -> None:
        assert von_neumann_debias(np.array([1])).tolist() == [1]
        assert von_neumann_debias(np.array([], dtype=np.uint8)).size == 0

    def test_all_equal_pairs_fall_back_to_first_bit(self) -> None:
        """Constant input keeps one bit so the caller never gets an empty batch."""
        assert von_neumann_debias(np.zeros(64, dtype=np.uint8)).tolist() == [0]
        assert von_neumann_debias(np.ones(64, dtype=np.uint8)).tolist() == [1]

    def test_does_not_mutate_input(self) -> None:
        bits = np.array([0, 1, 1, 0], dtype=np.uint8)
        von_neumann_debias(bits)
        assert bits.tolist() == [0, 1, 1, 0]


class TestBuiltinDebiasers:
    """Tests for the registered Debiaser classes."""

    def test_pass_through_keeps_bits(self) -> None:
        bits = np.array([1, 1, 0, 1], dtype=np.uint8)
        assert PassThroughDebiaser().debias(bits).tolist() == [1, 1, 0, 1]

    def test_von_neumann_class_delegates(self) -> None:
        bits = np.array([0, 1, 1, 0], dtype=np.uint8)
        assert VonNeumannDebiaser().debias(bits).tolist() == [0, 1]

    def test_hash_debiaser_emits_256_bits(self) -> None:
        assert HashDebiaser().debias(np.ones(2048, dtype=np.uint8)).size == 256

    def test_names(self) -> None:
        assert PassThroughDebiaser().name == "none"
        assert VonNeumannDebiaser().name == "von_neumann"
        assert HashDebiaser().name == "sha3"


class TestDebiaserRegistry:
    """Tests for DebiaserRegistry lookup and build."""

    def test_builtins_registered(self) -> None:
        assert {"none", "von_neumann", "sha3"} <= set(DebiaserRegistry.list_registered())

    def test_get_unknown_lists_available(self) -> None:
        with pytest.raises(KeyError, match="von_neumann"):
            DebiaserRegistry.get("nonexistent")

    def test_duplicate_registration_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):

            @DebiaserRegistry.register("none")
            class _Dup(Debiaser):
                @property
                def name(self) -> str:
                    return "dup"

                def debias(self, bits: np.ndarray) -> np.ndarray:
                    return bits

    def test_build_from_config(self) -> None:
        debiaser = DebiaserRegistry.build(make_config(debiaser_type="von_neumann"))
        assert isinstance(debiaser, VonNeumannDebiaser)

    def test_default_config_builds_pass_through(self) -> None:
        assert isinstance(DebiaserRegistry.build(make_config()), PassThroughDebiaser)

    def test_tables_are_separate(self) -> None:
        """Debiaser and source names live in different tables."""
        assert "system" not in DebiaserRegistry.list_registered()
        assert "von_neumann" not in EntropySourceRegistry.list_registered()

    def test_plugin_group(self) -> None:
        saved = dict(DebiaserRegistry._plugins)
        DebiaserRegistry._discovered = False
        try:
            with patch("importlib.metadata.entry_points", return_value=[]) as entry_points:
                DebiaserRegistry.list_registered()
            entry_points.assert_called_once_with(group="qcrypto_engine.debiasers")
        finally:
            DebiaserRegistry._plugins.clear()
            DebiaserRegistry._plugins.update(saved)
            DebiaserRegistry._discovered = True
