import logging
from typing import Dict, List, Optional, Sequence

from .cycles import cycle_story_ids, detect_circular_dependencies
from .models import (
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DependencyWarning,
    DependencyWarningType,
    StoryRecord,
    StoryStatus,
)


logger = logging.getLogger(__name__)


def index_stories(stories: Sequence[StoryRecord]) -> Dict[str, StoryRecord]:
    return {story.id: story for story in stories}


def resolvable_blockers(stories: Sequence[StoryRecord]) -> Dict[str, List[str]]:
    """Map each story id to its blockers that exist in ``stories``.

    Duplicate entries collapse to one; recorded order is kept.
    """
    story_map = index_stories(stories)
    blockers: Dict[str, List[str]] = {}
    for story in stories:
        resolved = blockers.setdefault(story.id, [])
        for dep_id in story.depends_on:
            if dep_id in story_map and dep_id not in resolved:
                resolved.append(dep_id)
    return blockers


def story_label(story_map: Dict[str, StoryRecord], story_id: str) -> str:
    story = story_map.get(story_id)
    return story.title if story and story.title else story_id


def compute_depths(blocked_by: Dict[str, List[str]]) -> Dict[str, int]:
    """Longest blocker chain below each story.

    Uses an explicit stack with a memo table and an on-path set. Reaching a
    story that is already on the current path (a cycle) counts that story as
    depth 0 instead of descending again, so the walk always terminates.
    """
    depths: Dict[str, int] = {}
    for root in blocked_by:
        if root in depths:
            continue
        on_path = {root}
        frames = [[root, iter(blocked_by[root]), 0]]
        while frames:
            frame = frames[-1]
            descended = False
            for blocker in frame[1]:
                if blocker in depths:
                    frame[2] = max(frame[2], depths[blocker] + 1)
                elif blocker in on_path:
                    frame[2] = max(frame[2], 1)
                else:
                    on_path.add(blocker)
                    frames.append([blocker, iter(blocked_by.get(blocker, ())), 0])
                    descended = True
                    break
            if descended:
                continue
            frames.pop()
            node, _, depth = frame
            on_path.discard(node)
            depths[node] = depth
            if frames:
                frames[-1][2] = max(frames[-1][2], depth + 1)
    return depths


def build_dependency_graph(stories: Sequence[StoryRecord], prd_id: Optional[str] = None) -> DependencyGraph:
    story_map = index_stories(stories)
    blocked_by = resolvable_blockers(stories)

    edges: List[DependencyEdge] = []
    blocks: Dict[str, List[str]] = {story.id: [] for story in stories}
    seen_edges = set()
    for story in stories:
        for dep_id in blocked_by[story.id]:
            if (dep_id, story.id) in seen_edges:
                continue
            seen_edges.add((dep_id, story.id))
            edges.append(DependencyEdge(
                from_id=dep_id,
                to_id=story.id,
                reason=story.dependency_reasons.get(dep_id) or None,
            ))
            blocks[dep_id].append(story.id)

    depths = compute_depths(blocked_by)

    def is_completed(story_id):
        return story_map[story_id].status == StoryStatus.COMPLETED

    nodes = [
        DependencyNode(
            story_id=story.id,
            title=story.title,
            status=story.status,
            priority=story.priority,
            blocks_count=len(blocks[story.id]),
            blocked_by_count=len(blocked_by[story.id]),
            is_ready=all(is_completed(dep_id) for dep_id in blocked_by[story.id]),
            depth=depths.get(story.id, 0),
        )
        for story in stories
    ]

    warnings: List[DependencyWarning] = []

    circular_pairs = detect_circular_dependencies(blocked_by)
    if circular_pairs:
        involved = cycle_story_ids(circular_pairs)
        warnings.append(DependencyWarning(
            type=DependencyWarningType.CIRCULAR,
            message="Circular dependencies detected involving stories: "
                    + ", ".join(story_label(story_map, sid) for sid in involved),
            story_ids=involved,
        ))

    for story in stories:
        for dep_id in story.depends_on:
            if dep_id not in story_map:
                warnings.append(DependencyWarning(
                    type=DependencyWarningType.ORPHAN_DEPENDENCY,
                    message=f'Story "{story.title}" depends on non-existent story ID: {dep_id}',
                    story_ids=[story.id],
                ))

    for story in stories:
        if not story.status.is_active:
            continue
        unresolved = [dep_id for dep_id in blocked_by[story.id] if not is_completed(dep_id)]
        if unresolved:
            warnings.append(DependencyWarning(
                type=DependencyWarningType.UNRESOLVED_BLOCKER,
                message=f'Story "{story.title}" is blocked by: '
                        + ", ".join(story_label(story_map, sid) for sid in unresolved),
                story_ids=[story.id] + unresolved,
            ))

    logger.debug(
        "Built dependency graph for %s: %d nodes, %d edges, %d warnings",
        prd_id or "<snapshot>", len(nodes), len(edges), len(warnings),
    )
    return DependencyGraph(prd_id=prd_id, nodes=nodes, edges=edges, warnings=warnings)
