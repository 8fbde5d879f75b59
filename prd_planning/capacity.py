import math
from dataclasses import dataclass

from .models import CapacityMode, InvalidCapacityError, StoryRecord


@dataclass(frozen=True)
class CapacityBudget:
    capacity: float
    mode: CapacityMode

    def weight_of(self, story: StoryRecord) -> int:
        return story_weight(story, self.mode)

    def fits(self, current_weight: float, weight: float) -> bool:
        return current_weight + weight <= self.capacity


def validate_capacity(capacity) -> float:
    if isinstance(capacity, bool) or not isinstance(capacity, (int, float)):
        raise InvalidCapacityError(f"capacity must be a positive number, got {capacity!r}")
    if not math.isfinite(capacity) or capacity <= 0:
        raise InvalidCapacityError(f"capacity must be a positive number, got {capacity!r}")
    return capacity


def build_capacity_budget(capacity, capacity_mode) -> CapacityBudget:
    return CapacityBudget(
        capacity=validate_capacity(capacity),
        mode=CapacityMode.parse(capacity_mode),
    )


def story_weight(story: StoryRecord, mode: CapacityMode) -> int:
    if mode == CapacityMode.COUNT:
        return 1
    return story.estimate or 0
