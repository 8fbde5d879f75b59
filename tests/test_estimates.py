"""Tests for prd_planning.estimates module."""

from prd_planning.estimates import estimate_size, summarize_estimates


class TestSummarizeEstimates:
    """Test summarize_estimates function."""

    def test_summary(self, make_story):
        stories = [make_story(f"S{p}", estimate=p) for p in (1, 2, 3, 5, 8, 13)] + [make_story("NONE")]
        summary = summarize_estimates(stories)

        assert summary.total_points == 32
        assert summary.average_points == 5.3
        assert (summary.small_count, summary.medium_count, summary.large_count) == (2, 2, 2)
        assert summary.estimated_count == 6
        assert summary.unestimated_count == 1

    def test_no_estimates(self, make_story):
        summary = summarize_estimates([make_story("A")])
        assert summary.total_points == 0
        assert summary.average_points == 0.0
        assert summary.to_dict()["unestimatedCount"] == 1

    def test_estimate_size(self):
        assert estimate_size(2) == "small"
        assert estimate_size(5) == "medium"
        assert estimate_size(13) == "large"
        assert estimate_size(None) is None

    def test_average_rounds_half_up(self, make_story):
        stories = [make_story(f"S{i}", estimate=p) for i, p in enumerate((1, 2, 3, 3))]
        assert summarize_estimates(stories).average_points == 2.3
