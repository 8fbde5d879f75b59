import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from .models import StoryRecord


SIZE_BY_POINTS = {
    1: "small",
    2: "small",
    3: "medium",
    5: "medium",
    8: "large",
    13: "large",
}


@dataclass
class EstimateSummary:
    total_points: int
    average_points: float
    small_count: int
    medium_count: int
    large_count: int
    estimated_count: int
    unestimated_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPoints": self.total_points,
            "averagePoints": self.average_points,
            "smallCount": self.small_count,
            "mediumCount": self.medium_count,
            "largeCount": self.large_count,
            "estimatedCount": self.estimated_count,
            "unestimatedCount": self.unestimated_count,
        }


def estimate_size(points: Optional[int]) -> Optional[str]:
    return SIZE_BY_POINTS.get(points)


def summarize_estimates(stories: Sequence[StoryRecord]) -> EstimateSummary:
    points = [s.estimate for s in stories if s.estimate]
    sizes = [estimate_size(p) for p in points]
    total = sum(points)
    return EstimateSummary(
        total_points=total,
        average_points=math.floor(total / len(points) * 10 + 0.5) / 10 if points else 0.0,
        small_count=sizes.count("small"),
        medium_count=sizes.count("medium"),
        large_count=sizes.count("large"),
        estimated_count=len(points),
        unestimated_count=len(stories) - len(points),
    )
