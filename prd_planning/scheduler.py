from collections import defaultdict
import heapq
import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .capacity import CapacityBudget, build_capacity_budget
from .graph import index_stories, resolvable_blockers
from .models import (
    CapacityMode,
    Priority,
    PrecedenceViolation,
    Sprint,
    SprintAssignment,
    SprintCandidate,
    SprintStory,
    StoryRecord,
    StoryStatus,
    UnassignedStory,
)


logger = logging.getLogger(__name__)


PRIORITY_ORDER = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

NO_ESTIMATE_REASON = "No estimate — estimate the story first"
FILL_REASON = "Added to fill remaining capacity"
OVERFLOW_REASON = "Added to overflow sprint"
OVERFLOW_RATIONALE = "Overflow sprint for remaining stories"


def priority_rank(priority) -> int:
    if not priority:
        return PRIORITY_ORDER[Priority.MEDIUM]
    try:
        return PRIORITY_ORDER[Priority(priority)]
    except ValueError:
        return PRIORITY_ORDER[Priority.MEDIUM]


def default_story_reason(story: StoryRecord) -> str:
    reason = f"{story.priority.value} priority, {story.estimate or 0}pts"
    dep_count = len(dict.fromkeys(story.depends_on))
    if dep_count:
        reason += f", depends on {dep_count} story(ies)"
    return reason


def split_schedulable(stories: Sequence[StoryRecord]) -> Tuple[List[StoryRecord], List[UnassignedStory]]:
    """Separate pending, estimated stories from the ones that cannot be planned."""
    unassigned = [
        UnassignedStory(story_id=s.id, title=s.title, reason=f"Already {s.status.value}")
        for s in stories
        if s.status.is_terminal
    ]
    eligible = []
    for story in stories:
        if story.status.is_terminal:
            continue
        if not story.estimate:
            unassigned.append(UnassignedStory(story_id=story.id, title=story.title, reason=NO_ESTIMATE_REASON))
        else:
            eligible.append(story)
    return eligible, unassigned


def _add_story(sprint: Sprint, story: StoryRecord, budget: CapacityBudget, reason: str):
    sprint.stories.append(SprintStory(
        story_id=story.id,
        title=story.title,
        story_points=story.estimate or 0,
        priority=story.priority,
        reason=reason,
    ))
    sprint.total_weight += budget.weight_of(story)
    sprint.total_points += story.estimate or 0


def _sprints_from_candidate(
    candidate: SprintCandidate,
    eligible_map: Dict[str, StoryRecord],
    budget: CapacityBudget,
) -> Tuple[List[Sprint], set]:
    sprints = []
    seen = set()
    assigned = set()
    for candidate_sprint in candidate.sprints:
        sprint = Sprint(sprint_number=0, rationale=candidate_sprint.rationale or "")
        for story_id in candidate_sprint.story_ids:
            story = eligible_map.get(story_id)
            if story is None:
                logger.warning("Dropping candidate story %r: not a pending, estimated story", story_id)
                continue
            if story_id in seen:
                logger.warning("Dropping duplicate candidate assignment of story %r", story_id)
                continue
            seen.add(story_id)
            weight = budget.weight_of(story)
            if sprint.stories and not budget.fits(sprint.total_weight, weight):
                logger.warning("Candidate sprint over capacity; re-placing story %r", story_id)
                continue
            _add_story(sprint, story, budget, candidate_sprint.story_reasons.get(story_id) or default_story_reason(story))
            assigned.add(story_id)
        if sprint.stories:
            sprints.append(sprint)
    return sprints, assigned


def plan_sprints(
    stories: Sequence[StoryRecord],
    capacity,
    capacity_mode=CapacityMode.POINTS,
    candidate: Optional[Union[SprintCandidate, SprintAssignment]] = None,
    prd_id: Optional[str] = None,
) -> SprintAssignment:
    """Repair an optional candidate plan into a complete, capacity-valid one.

    Candidate assignments are kept in their sprints when they name a pending,
    estimated story that has not been assigned earlier and still fits. Every
    other eligible story is then placed first-fit, in input order, into the
    earliest sprint with room, opening a new sprint when none has room. A story
    heavier than ``capacity`` gets a sprint of its own. Sprints are not
    reordered to satisfy dependencies; see ``find_precedence_violations``.

    Raises ``InvalidCapacityError`` / ``InvalidCapacityModeError`` for a bad
    budget.
    """
    budget = build_capacity_budget(capacity, capacity_mode)
    eligible, unassigned = split_schedulable(stories)
    eligible_map = {story.id: story for story in eligible}

    if isinstance(candidate, SprintAssignment):
        candidate = SprintCandidate.from_assignment(candidate)

    sprints: List[Sprint] = []
    assigned = set()
    if candidate is not None:
        sprints, assigned = _sprints_from_candidate(candidate, eligible_map, budget)

    for story in eligible:
        if story.id in assigned:
            continue
        weight = budget.weight_of(story)
        target = next((s for s in sprints if budget.fits(s.total_weight, weight)), None)
        if target is not None:
            _add_story(target, story, budget, FILL_REASON)
        else:
            target = Sprint(sprint_number=0, rationale=OVERFLOW_RATIONALE)
            _add_story(target, story, budget, OVERFLOW_REASON)
            sprints.append(target)
        assigned.add(story.id)

    for number, sprint in enumerate(sprints, 1):
        sprint.sprint_number = number
        if not sprint.rationale:
            sprint.rationale = f"Sprint {number} stories"

    if candidate is not None and candidate.summary:
        summary = candidate.summary
    elif eligible:
        summary = f"Planned {len(eligible)} stories across {len(sprints)} sprints."
    else:
        summary = "No pending estimated stories to plan."

    assignment = SprintAssignment(
        prd_id=prd_id,
        capacity=budget.capacity,
        capacity_mode=budget.mode,
        sprints=sprints,
        unassigned_stories=unassigned,
        total_weight=sum(s.total_weight for s in sprints),
        total_points=sum(s.total_points for s in sprints),
        summary=summary,
    )
    logger.debug(
        "Planned %d stories into %d sprints (%d unassigned)",
        len(eligible), assignment.total_sprints, len(unassigned),
    )
    return assignment


def find_precedence_violations(
    assignment: SprintAssignment,
    stories: Sequence[StoryRecord],
) -> List[PrecedenceViolation]:
    """Scheduled stories that come before (or without) an incomplete blocker.

    A blocker must sit in an earlier sprint, or earlier in the same sprint.
    A story that depends on itself can never satisfy that.
    """
    story_map = index_stories(stories)
    blocked_by = resolvable_blockers(stories)
    positions: Dict[str, Tuple[int, int]] = {}
    for sprint in assignment.sprints:
        for index, entry in enumerate(sprint.stories):
            positions.setdefault(entry.story_id, (sprint.sprint_number, index))

    violations = []
    for sprint in assignment.sprints:
        for index, entry in enumerate(sprint.stories):
            for blocker_id in blocked_by.get(entry.story_id, ()):
                blocker = story_map[blocker_id]
                if blocker.status == StoryStatus.COMPLETED:
                    continue
                position = positions.get(blocker_id)
                if blocker_id == entry.story_id:
                    message = (
                        f'Story "{entry.title}" (sprint {sprint.sprint_number}) depends on itself'
                    )
                elif position is None:
                    message = (
                        f'Story "{entry.title}" (sprint {sprint.sprint_number}) depends on '
                        f'"{blocker.title}", which is not scheduled'
                    )
                elif position > (sprint.sprint_number, index):
                    message = (
                        f'Story "{entry.title}" (sprint {sprint.sprint_number}) is scheduled before '
                        f'its blocker "{blocker.title}" (sprint {position[0]})'
                    )
                else:
                    continue
                violations.append(PrecedenceViolation(
                    story_id=entry.story_id,
                    blocker_id=blocker_id,
                    story_sprint=sprint.sprint_number,
                    blocker_sprint=position[0] if position else None,
                    message=message,
                ))
    return violations


def execution_order(stories: Sequence[StoryRecord]) -> List[str]:
    """Topological order of the non-terminal stories.

    Only blockers that are themselves non-terminal hold a story back. Among
    stories that are free at the same time, higher priority goes first, then
    input order. Stories on (or behind) a cycle never become free and are left
    out of the result.
    """
    active = [s for s in stories if not s.status.is_terminal]
    position = {s.id: i for i, s in enumerate(active)}
    story_map = {s.id: s for s in active}
    blocked_by = resolvable_blockers(stories)

    indegree = {key: 0 for key in story_map}
    forward = defaultdict(list)
    for key in story_map:
        for dep in blocked_by.get(key, ()):
            if dep not in story_map:
                continue
            forward[dep].append(key)
            indegree[key] += 1

    queue = []
    for key, count in indegree.items():
        if count == 0:
            heapq.heappush(queue, (priority_rank(story_map[key].priority), position[key], key))
    order = []
    while queue:
        _, _, current = heapq.heappop(queue)
        order.append(current)
        for nxt in forward.get(current, []):
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                heapq.heappush(queue, (priority_rank(story_map[nxt].priority), position[nxt], nxt))

    skipped = len(story_map) - len(order)
    if skipped:
        logger.debug("%d story(ies) left out of execution order by circular dependencies", skipped)
    return order


def select_next_story(stories: Sequence[StoryRecord]) -> Optional[StoryRecord]:
    """Highest-priority pending story whose blockers are all completed."""
    story_map = index_stories(stories)
    blocked_by = resolvable_blockers(stories)
    best = None
    best_key = None
    for index, story in enumerate(stories):
        if story.status != StoryStatus.PENDING:
            continue
        if not all(story_map[dep].status == StoryStatus.COMPLETED for dep in blocked_by[story.id]):
            continue
        key = (priority_rank(story.priority), index)
        if best_key is None or key < best_key:
            best, best_key = story, key
    return best
