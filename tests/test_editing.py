"""Tests for prd_planning.editing module."""

import pytest

from prd_planning.editing import (
    ProposedDependency,
    add_dependency,
    merge_dependencies,
    remove_dependency,
    set_dependency_reason,
)
from prd_planning.models import DependencyEditError


def by_id(stories):
    return {s.id: s for s in stories}


class TestAddDependency:
    """Test add_dependency function."""

    def test_adds_edge_and_reason(self, make_story):
        stories = [make_story("A"), make_story("B")]
        result = by_id(add_dependency(stories, "B", "A", "needs A's API"))
        assert result["B"].depends_on == ("A",)
        assert result["B"].dependency_reasons == {"A": "needs A's API"}

    def test_does_not_mutate_input(self, make_story):
        stories = [make_story("A"), make_story("B")]
        add_dependency(stories, "B", "A")
        assert stories[1].depends_on == ()

    def test_existing_edge_is_not_duplicated(self, make_story):
        stories = [make_story("A"), make_story("B", ["A"])]
        assert by_id(add_dependency(stories, "B", "A"))["B"].depends_on == ("A",)

    def test_self_dependency_rejected(self, make_story):
        with pytest.raises(DependencyEditError, match="itself"):
            add_dependency([make_story("A")], "A", "A")

    def test_unknown_story_rejected(self, make_story):
        with pytest.raises(DependencyEditError, match="ghost"):
            add_dependency([make_story("A")], "A", "ghost")


class TestRemoveDependency:
    """Test remove_dependency function."""

    def test_removes_edge_and_reason(self, make_story):
        stories = [make_story("A"), make_story("B", ["A", "A"], reasons={"A": "why"})]
        result = by_id(remove_dependency(stories, "B", "A"))
        assert result["B"].depends_on == ()
        assert result["B"].dependency_reasons == {}

    def test_missing_edge_is_a_no_op(self, make_story):
        stories = [make_story("A"), make_story("B")]
        assert remove_dependency(stories, "B", "A") == stories


class TestSetDependencyReason:
    """Test set_dependency_reason function."""

    def test_sets_and_clears(self, make_story):
        stories = [make_story("A"), make_story("B", ["A"])]
        stories = set_dependency_reason(stories, "B", "A", "shared model")
        assert by_id(stories)["B"].dependency_reasons == {"A": "shared model"}
        stories = set_dependency_reason(stories, "B", "A", "")
        assert by_id(stories)["B"].dependency_reasons == {}

    def test_missing_dependency(self, make_story):
        with pytest.raises(DependencyEditError, match="does not exist"):
            set_dependency_reason([make_story("A"), make_story("B")], "B", "A", "x")


class TestMergeDependencies:
    """Test merge_dependencies function."""

    def test_adds_valid_proposals_and_ignores_invalid(self, make_story):
        stories = [make_story("A"), make_story("B"), make_story("C")]
        proposed = [
            ProposedDependency("C", "A", "uses A"),
            ProposedDependency("C", "ghost"),
            ProposedDependency("B", "B"),
        ]
        result = by_id(merge_dependencies(stories, proposed))
        assert result["C"].depends_on == ("A",)
        assert result["C"].dependency_reasons == {"A": "uses A"}
        assert result["B"].depends_on == ()

    def test_cycle_closing_proposal_is_dropped(self, make_story):
        stories = [make_story("A"), make_story("B", ["A"])]
        result = by_id(merge_dependencies(stories, [ProposedDependency("A", "B")]))
        assert result["A"].depends_on == ()
        assert result["B"].depends_on == ("A",)

    def test_existing_reason_wins_unless_replacing(self, make_story):
        stories = [make_story("A"), make_story("B", ["A"], reasons={"A": "manual"})]
        proposal = [ProposedDependency("B", "A", "detected")]
        assert by_id(merge_dependencies(stories, proposal))["B"].dependency_reasons == {"A": "manual"}
        replaced = by_id(merge_dependencies(stories, proposal, replace=True))
        assert replaced["B"].dependency_reasons == {"A": "detected"}

    def test_replace_discards_existing_edges(self, make_story):
        stories = [make_story("A"), make_story("B", ["A"], reasons={"A": "old"}), make_story("C")]
        result = by_id(merge_dependencies(stories, [ProposedDependency("A", "C")], replace=True))
        assert result["A"].depends_on == ("C",)
        assert result["B"].depends_on == ()
        assert result["B"].dependency_reasons == {}

    def test_unchanged_stories_are_returned_as_is(self, make_story):
        stories = [make_story("A"), make_story("B", ["A"])]
        result = merge_dependencies(stories, [])
        assert result[0] is stories[0]
        assert result[1] is stories[1]

    def test_replace_keeps_existing_edge_that_is_reproposed(self, make_story):
        stories = [make_story("A", ["B"]), make_story("B")]
        proposed = [ProposedDependency("A", "B"), ProposedDependency("B", "A")]
        result = by_id(merge_dependencies(stories, proposed, replace=True))
        assert result["A"].depends_on == ("B",)
        assert result["B"].depends_on == ()
