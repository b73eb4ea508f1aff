"""Tests for CorrelationIdAllocator."""

from __future__ import annotations

import random
from unittest.mock import MagicMock

import pytest

from mystiebel_core.const import MSG_ID_LONG_MAX, MSG_ID_LONG_MIN, MSG_ID_MAX, MSG_ID_MIN
from mystiebel_core.ids import CorrelationIdAllocator


def _stub_rng(value: int) -> MagicMock:
    rng = MagicMock(spec=random.Random)
    rng.randint.return_value = value
    return rng


class TestAllocate:
    """Tests for allocate()."""

    def test_short_range(self):
        """Test read ids come from the seven digit range."""
        allocator = CorrelationIdAllocator(rng=random.Random(1))
        for _ in range(50):
            assert MSG_ID_MIN <= allocator.allocate() <= MSG_ID_MAX

    def test_long_range(self):
        """Test write ids come from the ten digit range."""
        allocator = CorrelationIdAllocator(rng=random.Random(1))
        for _ in range(50):
            assert MSG_ID_LONG_MIN <= allocator.allocate(long_form=True) <= MSG_ID_LONG_MAX

    def test_unique_within_generation(self):
        """Test a full generation of ids is pairwise distinct."""
        allocator = CorrelationIdAllocator(rng=random.Random(42))

        ids = [allocator.allocate() for _ in range(1000)]

        assert len(set(ids)) == 1000
        assert len(allocator) == 1000
        assert allocator.generation == 0
        assert all(msg_id in allocator for msg_id in ids)

    def test_history_reset(self):
        """Test the history is cleared when it reaches capacity."""
        allocator = CorrelationIdAllocator(rng=random.Random(42))
        for _ in range(1000):
            allocator.allocate()

        allocator.allocate()

        assert allocator.generation == 1
        assert len(allocator) == 1

    def test_redraws_on_collision(self):
        """Test a colliding draw is replaced by a fresh one."""
        rng = MagicMock(spec=random.Random)
        rng.randint.side_effect = [1234567, 1234567, 7654321]
        allocator = CorrelationIdAllocator(rng=rng)

        assert allocator.allocate() == 1234567
        assert allocator.allocate() == 7654321

    def test_fallback_after_max_attempts(self):
        """Test the last candidate is returned once attempts run out."""
        rng = _stub_rng(1234567)
        allocator = CorrelationIdAllocator(rng=rng)

        assert allocator.allocate() == 1234567
        assert allocator.allocate() == 1234567
        assert rng.randint.call_count == 1 + 100

    def test_reuse_across_generations(self):
        """Test ids from a previous generation may be drawn without retries."""
        rng = _stub_rng(1234567)
        allocator = CorrelationIdAllocator(capacity=1, rng=rng)

        assert allocator.allocate() == 1234567
        assert allocator.allocate() == 1234567
        assert rng.randint.call_count == 2
        assert allocator.generation == 1

    def test_invalid_configuration(self):
        """Test non-positive limits are rejected."""
        with pytest.raises(ValueError):
            CorrelationIdAllocator(capacity=0)
        with pytest.raises(ValueError):
            CorrelationIdAllocator(max_attempts=0)
