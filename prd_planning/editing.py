"""
Pure edits of dependency data on a story snapshot.

Each function returns a new list of stories; the input records are never
modified. Persisting the result is up to the caller.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .cycles import detect_circular_dependencies
from .graph import index_stories
from .models import DependencyEditError, StoryRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposedDependency:
    """``from_id`` depends on ``to_id`` (``to_id`` blocks ``from_id``)."""
    from_id: str
    to_id: str
    reason: Optional[str] = None


def _replace_story(stories: Sequence[StoryRecord], updated: StoryRecord) -> List[StoryRecord]:
    return [updated if s.id == updated.id else s for s in stories]


def _require_story(story_map: Dict[str, StoryRecord], story_id: str) -> StoryRecord:
    story = story_map.get(story_id)
    if story is None:
        raise DependencyEditError(f"Story {story_id} not found in this snapshot")
    return story


def add_dependency(
    stories: Sequence[StoryRecord],
    from_id: str,
    to_id: str,
    reason: Optional[str] = None,
) -> List[StoryRecord]:
    if not from_id or not to_id:
        raise DependencyEditError("from_id and to_id are required")
    if from_id == to_id:
        raise DependencyEditError("A story cannot depend on itself")
    story_map = index_stories(stories)
    story = _require_story(story_map, from_id)
    _require_story(story_map, to_id)

    depends_on = story.depends_on if to_id in story.depends_on else story.depends_on + (to_id,)
    reasons = dict(story.dependency_reasons)
    if reason:
        reasons[to_id] = reason
    return _replace_story(stories, dataclasses.replace(story, depends_on=depends_on, dependency_reasons=reasons))


def remove_dependency(stories: Sequence[StoryRecord], from_id: str, to_id: str) -> List[StoryRecord]:
    story = _require_story(index_stories(stories), from_id)
    if to_id not in story.depends_on and to_id not in story.dependency_reasons:
        return list(stories)
    reasons = {k: v for k, v in story.dependency_reasons.items() if k != to_id}
    depends_on = tuple(dep for dep in story.depends_on if dep != to_id)
    return _replace_story(stories, dataclasses.replace(story, depends_on=depends_on, dependency_reasons=reasons))


def set_dependency_reason(
    stories: Sequence[StoryRecord],
    from_id: str,
    to_id: str,
    reason: Optional[str],
) -> List[StoryRecord]:
    """Update the reason for an existing dependency. An empty reason clears it."""
    story = _require_story(index_stories(stories), from_id)
    if to_id not in story.depends_on:
        raise DependencyEditError("Dependency does not exist")
    if reason is None:
        return list(stories)
    reasons = dict(story.dependency_reasons)
    if reason == "":
        reasons.pop(to_id, None)
    else:
        reasons[to_id] = reason
    return _replace_story(stories, dataclasses.replace(story, dependency_reasons=reasons))


def merge_dependencies(
    stories: Sequence[StoryRecord],
    proposed: Iterable[ProposedDependency],
    replace: bool = False,
) -> List[StoryRecord]:
    """Merge externally proposed dependencies into the snapshot.

    Proposals naming unknown stories or a story depending on itself are
    ignored. A proposed edge that closes a cycle is dropped; edges the
    snapshot already had, including ones ``replace`` re-proposes, are never
    removed for that reason. Existing reasons win over proposed
    ones unless ``replace`` is set.
    """
    story_map = index_stories(stories)
    valid = [
        p for p in proposed
        if p.from_id in story_map and p.to_id in story_map and p.from_id != p.to_id
    ]

    existing = {s.id: list(dict.fromkeys(s.depends_on)) for s in stories}
    merged: Dict[str, List[str]] = {s.id: [] if replace else list(existing[s.id]) for s in stories}
    for p in valid:
        if p.to_id not in merged[p.from_id]:
            merged[p.from_id].append(p.to_id)

    # Drop proposed edges on cycles until none is left to drop; pre-existing ones stay.
    while True:
        dropped = False
        for story_id, blocker_id in detect_circular_dependencies(merged):
            if blocker_id in existing[story_id]:
                continue
            if blocker_id in merged[story_id]:
                merged[story_id].remove(blocker_id)
                logger.info("Dropped proposed dependency %s -> %s: it closes a cycle", story_id, blocker_id)
                dropped = True
        if not dropped:
            break

    proposed_reasons: Dict[str, Dict[str, str]] = {}
    for p in valid:
        if p.reason:
            proposed_reasons.setdefault(p.from_id, {})[p.to_id] = p.reason

    result = []
    for story in stories:
        depends_on = tuple(merged[story.id])
        reasons = dict(story.dependency_reasons)
        for dep_id, reason in proposed_reasons.get(story.id, {}).items():
            if replace or not reasons.get(dep_id):
                reasons[dep_id] = reason
        reasons = {k: v for k, v in reasons.items() if k in depends_on}
        if depends_on == tuple(dict.fromkeys(story.depends_on)) and reasons == dict(story.dependency_reasons):
            result.append(story)
        else:
            result.append(dataclasses.replace(story, depends_on=depends_on, dependency_reasons=reasons))
    return result
