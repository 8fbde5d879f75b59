import logging
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple


logger = logging.getLogger(__name__)


def _ordered_unique(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def detect_circular_dependencies(adjacency: Mapping[str, Iterable[str]]) -> List[Tuple[str, str]]:
    """Find dependency edges that lie on a cycle.

    ``adjacency`` maps a story id to the ids of the stories blocking it (only
    edges that resolve inside the snapshot). Returns ``(story, blocker)`` pairs,
    each one an edge of ``adjacency``, in the order the search closes the
    cycles. Every root is searched, so disjoint cycles are all reported.

    The search keeps an explicit stack instead of recursing, so deep chains
    cannot exhaust the interpreter's recursion limit.
    """
    graph: Dict[str, List[str]] = {node: _ordered_unique(blockers) for node, blockers in adjacency.items()}
    pairs: List[Tuple[str, str]] = []
    reported = set()
    visited = set()
    in_stack = set()

    def record(pair):
        if pair not in reported:
            reported.add(pair)
            pairs.append(pair)

    for root in graph:
        if root in visited:
            continue
        visited.add(root)
        in_stack.add(root)
        path = [root]
        position = {root: 0}
        pending = [iter(graph[root])]

        while pending:
            node = path[-1]
            descended = False
            for blocker in pending[-1]:
                if blocker in in_stack:
                    # Back edge: the path from the blocker's first occurrence to here is a cycle.
                    start = position[blocker]
                    for i in range(start, len(path) - 1):
                        record((path[i], path[i + 1]))
                    record((node, blocker))
                    continue
                if blocker in visited:
                    continue
                visited.add(blocker)
                in_stack.add(blocker)
                position[blocker] = len(path)
                path.append(blocker)
                pending.append(iter(graph.get(blocker, ())))
                descended = True
                break
            if not descended:
                pending.pop()
                finished = path.pop()
                in_stack.discard(finished)
                del position[finished]

    if pairs:
        logger.debug("Detected %d cycle edge(s) across %d node(s)", len(pairs), len(cycle_story_ids(pairs)))
    return pairs


def cycle_story_ids(pairs: Sequence[Tuple[str, str]]) -> List[str]:
    """Story ids touched by ``pairs``, first-seen order."""
    return _ordered_unique(story_id for pair in pairs for story_id in pair)
