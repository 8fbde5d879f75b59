import json
from dataclasses import dataclass
from typing import Any, List, Optional

from .models import SnapshotError, SprintCandidate, StoryRecord


@dataclass
class Snapshot:
    prd_id: Optional[str]
    stories: List[StoryRecord]
    candidate: Optional[SprintCandidate] = None


def _read_json(path: str) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except OSError as e:
        raise SnapshotError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SnapshotError(f"{path} is not valid JSON: {e}") from e


def parse_snapshot(data: Any) -> Snapshot:
    """Parse ``{"prdId": ..., "stories": [...], "candidate": {...}}``.

    A bare list is read as the story list.
    """
    if isinstance(data, list):
        data = {"stories": data}
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a JSON object or a list of stories")
    raw_stories = data.get("stories")
    if not isinstance(raw_stories, list):
        raise SnapshotError("Snapshot needs a 'stories' list")
    stories = [StoryRecord.from_dict(s) for s in raw_stories]
    candidate = None
    if data.get("candidate") is not None:
        candidate = SprintCandidate.from_dict(data["candidate"])
    prd_id = data.get("prdId")
    return Snapshot(prd_id=str(prd_id) if prd_id is not None else None, stories=stories, candidate=candidate)


def load_snapshot(path: str) -> Snapshot:
    return parse_snapshot(_read_json(path))


def load_candidate(path: str) -> SprintCandidate:
    return SprintCandidate.from_dict(_read_json(path))


def dump_json(payload: Any) -> str:
    """Serialize a result; dict key order is kept as produced."""
    if hasattr(payload, "to_dict"):
        payload = payload.to_dict()
    return json.dumps(payload, indent=2, ensure_ascii=False)
