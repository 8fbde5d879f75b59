import pytest

from prd_planning.models import StoryRecord


@pytest.fixture
def make_story():
    """Factory for StoryRecord with test-friendly defaults."""
    def _make(story_id, depends_on=(), status="pending", priority="medium", estimate=None, title=None, reasons=None):
        return StoryRecord(
            id=story_id,
            title=title or f"Story {story_id}",
            priority=priority,
            status=status,
            depends_on=tuple(depends_on),
            dependency_reasons=reasons or {},
            estimate=estimate,
        )
    return _make
