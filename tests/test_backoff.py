"""Tests for ReconnectPolicy."""

import pytest

from mystiebel_core.backoff import ReconnectPolicy


class TestReconnectPolicy:
    """Tests for the exponential backoff schedule."""

    def test_default_schedule(self):
        """Test delays double from the floor and stop at the ceiling."""
        policy = ReconnectPolicy()

        delays = [policy.next_delay() for _ in range(8)]

        assert delays == [5, 10, 20, 40, 80, 160, 300, 300]
        assert policy.failures == 8

    def test_reset(self):
        """Test reset returns to the floor."""
        policy = ReconnectPolicy()
        policy.next_delay()
        policy.next_delay()

        policy.reset()

        assert policy.failures == 0
        assert policy.current_delay == 5
        assert policy.next_delay() == 5

    def test_custom_bounds(self):
        """Test custom floor and ceiling."""
        policy = ReconnectPolicy(1, 3)
        assert [policy.next_delay() for _ in range(4)] == [1, 2, 3, 3]
        assert policy.floor == 1
        assert policy.ceiling == 3

    @pytest.mark.parametrize(
        ("floor", "ceiling", "factor"),
        [(0, 10, 2), (10, 5, 2), (1, 10, 0.5)],
    )
    def test_invalid_arguments(self, floor, ceiling, factor):
        """Test invalid bounds are rejected."""
        with pytest.raises(ValueError):
            ReconnectPolicy(floor, ceiling, factor=factor)
