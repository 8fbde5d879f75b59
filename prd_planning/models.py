from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


VALID_STORY_POINTS = (1, 2, 3, 5, 8, 13)


class PlanningInputError(ValueError):
    """Caller mistake that is reported as a failure, never as a warning."""


class InvalidCapacityError(PlanningInputError):
    pass


class InvalidCapacityModeError(PlanningInputError):
    pass


class InvalidStoryError(PlanningInputError):
    pass


class DependencyEditError(PlanningInputError):
    pass


class SnapshotError(PlanningInputError):
    pass


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StoryStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"

    @property
    def is_active(self) -> bool:
        return self in (StoryStatus.PENDING, StoryStatus.IN_PROGRESS)

    @property
    def is_terminal(self) -> bool:
        return self in (StoryStatus.COMPLETED, StoryStatus.SKIPPED)


class CapacityMode(str, Enum):
    COUNT = "count"
    POINTS = "points"

    @classmethod
    def parse(cls, value) -> "CapacityMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(mode.value for mode in cls)
            raise InvalidCapacityModeError(
                f"Unknown capacity mode {value!r} (expected one of: {allowed})"
            ) from None


def _parse_story_enum(enum_cls, value, field_name: str, story_id: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidStoryError(
            f"Story {story_id!r} has invalid {field_name} {value!r} (expected one of: {allowed})"
        ) from None


@dataclass(frozen=True)
class StoryRecord:
    """One story as supplied by the story store.

    ``depends_on`` lists the ids of blocking stories in recorded order. It may
    name ids outside the snapshot and may repeat an id; the graph code copes
    with both.
    """
    id: str
    title: str
    priority: Priority = Priority.MEDIUM
    status: StoryStatus = StoryStatus.PENDING
    depends_on: Tuple[str, ...] = ()
    dependency_reasons: Mapping[str, str] = field(default_factory=dict)
    estimate: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise InvalidStoryError(f"Story id must be a non-empty string, got {self.id!r}")
        if isinstance(self.depends_on, str):
            raise InvalidStoryError(f"Story {self.id!r} dependsOn must be a list of ids")
        object.__setattr__(self, "priority", _parse_story_enum(Priority, self.priority, "priority", self.id))
        object.__setattr__(self, "status", _parse_story_enum(StoryStatus, self.status, "status", self.id))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "dependency_reasons", dict(self.dependency_reasons or {}))
        if self.estimate is not None:
            if (
                isinstance(self.estimate, bool)
                or not isinstance(self.estimate, int)
                or self.estimate not in VALID_STORY_POINTS
            ):
                raise InvalidStoryError(
                    f"Story {self.id!r} has invalid estimate {self.estimate!r} "
                    f"(expected one of: {', '.join(str(p) for p in VALID_STORY_POINTS)})"
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoryRecord":
        """Build a record from the camelCase wire shape used by the story store."""
        if not isinstance(data, Mapping):
            raise InvalidStoryError(f"Story must be an object, got {type(data).__name__}")
        story_id = data.get("id")
        depends_on = data.get("dependsOn") or []
        if not isinstance(depends_on, (list, tuple)):
            raise InvalidStoryError(f"Story {story_id!r} dependsOn must be a list of ids")
        reasons = data.get("dependencyReasons") or {}
        if not isinstance(reasons, Mapping):
            raise InvalidStoryError(f"Story {story_id!r} dependencyReasons must be an object")
        estimate = data.get("estimate")
        # Stored estimates are objects ({size, storyPoints, ...}); plain ints are accepted too.
        if isinstance(estimate, Mapping):
            estimate = estimate.get("storyPoints")
        return cls(
            id=story_id,
            title=data.get("title") or story_id or "",
            priority=data.get("priority") or Priority.MEDIUM,
            status=data.get("status") or StoryStatus.PENDING,
            depends_on=tuple(str(dep) for dep in depends_on),
            dependency_reasons={str(k): str(v) for k, v in reasons.items() if v},
            estimate=estimate,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "priority": self.priority.value,
            "status": self.status.value,
            "dependsOn": list(self.depends_on),
            "dependencyReasons": dict(self.dependency_reasons),
            "estimate": self.estimate,
        }


class DependencyWarningType(str, Enum):
    CIRCULAR = "circular"
    ORPHAN_DEPENDENCY = "orphan_dependency"
    UNRESOLVED_BLOCKER = "unresolved_blocker"


@dataclass
class DependencyNode:
    story_id: str
    title: str
    status: StoryStatus
    priority: Priority
    blocks_count: int
    blocked_by_count: int
    is_ready: bool
    depth: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storyId": self.story_id,
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority.value,
            "blocksCount": self.blocks_count,
            "blockedByCount": self.blocked_by_count,
            "isReady": self.is_ready,
            "depth": self.depth,
        }


@dataclass
class DependencyEdge:
    from_id: str  # blocker
    to_id: str  # blocked story
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"from": self.from_id, "to": self.to_id, "reason": self.reason}


@dataclass
class DependencyWarning:
    type: DependencyWarningType
    message: str
    story_ids: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "message": self.message, "storyIds": list(self.story_ids)}


@dataclass
class DependencyGraph:
    prd_id: Optional[str]
    nodes: List[DependencyNode]
    edges: List[DependencyEdge]
    warnings: List[DependencyWarning]

    def node(self, story_id: str) -> Optional[DependencyNode]:
        for node in self.nodes:
            if node.story_id == story_id:
                return node
        return None

    def warnings_of(self, warning_type: DependencyWarningType) -> List[DependencyWarning]:
        return [w for w in self.warnings if w.type == warning_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prdId": self.prd_id,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "warnings": [w.to_dict() for w in self.warnings],
        }


class PlanWarningType(str, Enum):
    CIRCULAR_DEPENDENCY = "circular_dependency"
    BLOCKED_STORY = "blocked_story"
    MISSING_DEPENDENCY = "missing_dependency"


@dataclass
class PlanWarning:
    type: PlanWarningType
    message: str
    story_id: str
    story_title: str
    blocked_by_story_ids: List[str] = field(default_factory=list)
    blocked_by_story_titles: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "storyId": self.story_id,
            "storyTitle": self.story_title,
            "blockedByStoryIds": list(self.blocked_by_story_ids),
            "blockedByStoryTitles": list(self.blocked_by_story_titles),
        }


@dataclass
class PlanValidation:
    valid: bool
    warnings: List[PlanWarning]

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "warnings": [w.to_dict() for w in self.warnings]}


@dataclass
class SprintStory:
    story_id: str
    title: str
    story_points: int
    priority: Priority
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storyId": self.story_id,
            "title": self.title,
            "storyPoints": self.story_points,
            "priority": self.priority.value,
            "reason": self.reason,
        }


@dataclass
class Sprint:
    sprint_number: int
    stories: List[SprintStory] = field(default_factory=list)
    total_weight: float = 0
    total_points: int = 0
    rationale: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sprintNumber": self.sprint_number,
            "stories": [s.to_dict() for s in self.stories],
            "totalWeight": self.total_weight,
            "totalPoints": self.total_points,
            "rationale": self.rationale,
        }


@dataclass
class UnassignedStory:
    story_id: str
    title: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"storyId": self.story_id, "title": self.title, "reason": self.reason}


@dataclass
class SprintAssignment:
    prd_id: Optional[str]
    capacity: float
    capacity_mode: CapacityMode
    sprints: List[Sprint]
    unassigned_stories: List[UnassignedStory]
    total_weight: float
    total_points: int
    summary: str

    @property
    def total_sprints(self) -> int:
        return len(self.sprints)

    def sprint_of(self, story_id: str) -> Optional[int]:
        for sprint in self.sprints:
            for story in sprint.stories:
                if story.story_id == story_id:
                    return sprint.sprint_number
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prdId": self.prd_id,
            "capacity": self.capacity,
            "capacityMode": self.capacity_mode.value,
            "sprints": [s.to_dict() for s in self.sprints],
            "unassignedStories": [u.to_dict() for u in self.unassigned_stories],
            "totalWeight": self.total_weight,
            "totalPoints": self.total_points,
            "totalSprints": self.total_sprints,
            "summary": self.summary,
        }


@dataclass
class CandidateSprint:
    """One sprint of an externally produced plan. Treated as untrusted."""
    story_ids: List[str] = field(default_factory=list)
    rationale: Optional[str] = None
    story_reasons: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CandidateSprint":
        story_ids = []
        story_reasons = {}
        raw_ids = data.get("storyIds")
        if isinstance(raw_ids, list):
            story_ids = [sid for sid in raw_ids if isinstance(sid, str)]
        raw_reasons = data.get("storyReasons")
        if isinstance(raw_reasons, Mapping):
            story_reasons = {k: v for k, v in raw_reasons.items() if isinstance(k, str) and isinstance(v, str) and v}
        # Plan shape: stories: [{storyId, reason}]
        raw_stories = data.get("stories")
        if isinstance(raw_stories, list):
            for entry in raw_stories:
                if not isinstance(entry, Mapping) or not isinstance(entry.get("storyId"), str):
                    continue
                story_ids.append(entry["storyId"])
                reason = entry.get("reason")
                if isinstance(reason, str) and reason and entry["storyId"] not in story_reasons:
                    story_reasons[entry["storyId"]] = reason
        rationale = data.get("rationale")
        return cls(
            story_ids=story_ids,
            rationale=rationale.strip() if isinstance(rationale, str) and rationale.strip() else None,
            story_reasons=story_reasons,
        )


@dataclass
class SprintCandidate:
    sprints: List[CandidateSprint] = field(default_factory=list)
    summary: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "SprintCandidate":
        """Accept either ``{"sprints": [...], "summary": ...}`` or a bare list of sprints."""
        summary = None
        raw_sprints = data
        if isinstance(data, Mapping):
            raw_sprints = data.get("sprints")
            if isinstance(data.get("summary"), str) and data["summary"].strip():
                summary = data["summary"].strip()
        if not isinstance(raw_sprints, list):
            return cls(sprints=[], summary=summary)
        sprints = [CandidateSprint.from_dict(s) for s in raw_sprints if isinstance(s, Mapping)]
        return cls(sprints=sprints, summary=summary)

    @classmethod
    def from_assignment(cls, assignment: SprintAssignment) -> "SprintCandidate":
        sprints = []
        for sprint in assignment.sprints:
            sprints.append(CandidateSprint(
                story_ids=[s.story_id for s in sprint.stories],
                rationale=sprint.rationale or None,
                story_reasons={s.story_id: s.reason for s in sprint.stories if s.reason},
            ))
        return cls(sprints=sprints, summary=assignment.summary or None)


@dataclass
class PrecedenceViolation:
    story_id: str
    blocker_id: str
    story_sprint: int
    blocker_sprint: Optional[int]  # None when the blocker is not scheduled
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storyId": self.story_id,
            "blockerId": self.blocker_id,
            "storySprint": self.story_sprint,
            "blockerSprint": self.blocker_sprint,
            "message": self.message,
        }
