import logging
from typing import List, Sequence

from .cycles import cycle_story_ids, detect_circular_dependencies
from .graph import index_stories, resolvable_blockers
from .models import (
    PlanValidation,
    PlanWarning,
    PlanWarningType,
    StoryRecord,
    StoryStatus,
)


logger = logging.getLogger(__name__)


def validate_sprint_plan(stories: Sequence[StoryRecord]) -> PlanValidation:
    """Check the active (pending / in-progress) stories for execution hazards.

    Every active story with an incomplete blocker gets a ``blocked_story``
    warning. When some of those blockers are not active themselves (nobody is
    going to work on them) a ``missing_dependency`` warning is emitted first.
    Stories on a dependency cycle get one ``circular_dependency`` warning each.
    """
    story_map = index_stories(stories)
    blocked_by = resolvable_blockers(stories)
    warnings: List[PlanWarning] = []

    for story in stories:
        if not story.status.is_active:
            continue
        blocking = [
            story_map[dep_id]
            for dep_id in blocked_by[story.id]
            if story_map[dep_id].status != StoryStatus.COMPLETED
        ]
        if not blocking:
            continue

        untracked = [b for b in blocking if not b.status.is_active]
        if untracked:
            warnings.append(PlanWarning(
                type=PlanWarningType.MISSING_DEPENDENCY,
                message=f'Story "{story.title}" depends on stories not in the current sprint: '
                        + ", ".join(b.title for b in untracked),
                story_id=story.id,
                story_title=story.title,
                blocked_by_story_ids=[b.id for b in untracked],
                blocked_by_story_titles=[b.title for b in untracked],
            ))

        warnings.append(PlanWarning(
            type=PlanWarningType.BLOCKED_STORY,
            message=f'Story "{story.title}" is blocked by: '
                    + ", ".join(b.title for b in blocking)
                    + ". Ensure these are completed first.",
            story_id=story.id,
            story_title=story.title,
            blocked_by_story_ids=[b.id for b in blocking],
            blocked_by_story_titles=[b.title for b in blocking],
        ))

    for story_id in cycle_story_ids(detect_circular_dependencies(blocked_by)):
        story = story_map[story_id]
        warnings.append(PlanWarning(
            type=PlanWarningType.CIRCULAR_DEPENDENCY,
            message=f'Story "{story.title}" is part of a circular dependency chain. This will prevent execution.',
            story_id=story.id,
            story_title=story.title,
        ))

    if warnings:
        logger.debug("Sprint plan validation produced %d warning(s)", len(warnings))
    return PlanValidation(valid=not warnings, warnings=warnings)
