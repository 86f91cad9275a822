"""Tests for the system, mock Bernoulli and hybrid entropy sources."""

from __future__ import annotations

import numpy as np
import pytest
from conftest import AlternatingSource, ConstantSource, FailingSource

from qcrypto_engine.entropy.hybrid import HybridEntropySource
from qcrypto_engine.entropy.mock import MockBernoulliSource
from qcrypto_engine.entropy.system import SystemEntropySource
from qcrypto_engine.exceptions import SourceFailureError


class TestSystemEntropySource:
    """Tests for the os.urandom() source."""

    def test_exact_length(self) -> None:
        source = SystemEntropySource()
        for n in (1, 7, 8, 2048):
            assert source.sample(n).size == n

    def test_bits_are_binary(self) -> None:
        bits = SystemEntropySource().sample(4096)
        assert set(np.unique(bits).tolist()) <= {0, 1}

    def test_always_available(self) -> None:
        source = SystemEntropySource()
        assert source.is_available
        source.close()
        assert source.health_check() == {"source": "system", "healthy": True}


class TestMockBernoulliSource:
    """Tests for the seeded Bernoulli source."""

    def test_seed_reproducible(self) -> None:
        a = MockBernoulliSource(seed=5).sample(512)
        b = MockBernoulliSource(seed=5).sample(512)
        np.testing.assert_array_equal(a, b)

    def test_stuck_sensor(self) -> None:
        assert MockBernoulliSource(p_one=1.0).sample(100).tolist() == [1] * 100
        assert MockBernoulliSource(p_one=0.0).sample(100).tolist() == [0] * 100

    def test_bias_is_visible(self) -> None:
        bits = MockBernoulliSource(p_one=0.9, seed=1).sample(10_000)
        assert 0.87 < bits.mean() < 0.93

    @pytest.mark.parametrize("p_one", [-0.1, 1.1])
    def test_invalid_probability(self, p_one: float) -> None:
        with pytest.raises(ValueError, match="p_one"):
            MockBernoulliSource(p_one=p_one)


class TestHybridEntropySource:
    """Tests for XOR composition of two sources."""

    def test_xor_of_batches(self) -> None:
        hybrid = HybridEntropySource(AlternatingSource(), ConstantSource(1))
        assert hybrid.sample(6).tolist() == [1, 0, 1, 0, 1, 0]

    def test_compound_name(self) -> None:
        hybrid = HybridEntropySource(AlternatingSource(), ConstantSource(0))
        assert hybrid.name == "alternating^constant_0"

    def test_secondary_failure_propagates(self) -> None:
        hybrid = HybridEntropySource(AlternatingSource(), FailingSource())
        with pytest.raises(SourceFailureError):
            hybrid.sample(16)

    def test_short_batch_rejected(self) -> None:
        class _Short(ConstantSource):
            def sample(self, num_bits: int) -> np.ndarray:
                return super().sample(num_bits - 1)

        hybrid = HybridEntropySource(AlternatingSource(), _Short())
        with pytest.raises(SourceFailureError, match="needed 16"):
            hybrid.sample(16)

    def test_available_requires_both(self) -> None:
        hybrid = HybridEntropySource(AlternatingSource(), FailingSource())
        assert not hybrid.is_available

    def test_close_closes_both(self) -> None:
        first, second = ConstantSource(0), ConstantSource(1)
        HybridEntropySource(first, second).close()
        assert first.closed
        assert second.closed

    def test_health_check_nests(self) -> None:
        report = HybridEntropySource(AlternatingSource(), ConstantSource(1)).health_check()
        assert report["primary"]["source"] == "alternating"
        assert report["secondary"]["source"] == "constant_1"
