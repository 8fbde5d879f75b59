"""Tests for prd_planning.capacity module."""

import pytest

from prd_planning.capacity import build_capacity_budget, story_weight, validate_capacity
from prd_planning.models import CapacityMode, InvalidCapacityError


class TestValidateCapacity:
    """Test validate_capacity function."""

    @pytest.mark.parametrize("capacity", [1, 13, 0.5, 40.0])
    def test_accepts_positive_numbers(self, capacity):
        assert validate_capacity(capacity) == capacity

    @pytest.mark.parametrize("capacity", [0, -1, -0.5, False, "10", [10]])
    def test_rejects(self, capacity):
        with pytest.raises(InvalidCapacityError):
            validate_capacity(capacity)


class TestStoryWeight:
    """Test story weights per capacity mode."""

    def test_count_mode_weighs_one(self, make_story):
        assert story_weight(make_story("A", estimate=13), CapacityMode.COUNT) == 1

    def test_points_mode_uses_estimate(self, make_story):
        assert story_weight(make_story("A", estimate=8), CapacityMode.POINTS) == 8
        assert story_weight(make_story("A"), CapacityMode.POINTS) == 0

    def test_budget_fits(self, make_story):
        budget = build_capacity_budget(5, "points")
        assert budget.mode == CapacityMode.POINTS
        assert budget.fits(3, 2)
        assert not budget.fits(3, 3)
        assert budget.weight_of(make_story("A", estimate=5)) == 5
