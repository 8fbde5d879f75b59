"""Tests for the prd_planner command-line entry point."""

import json

import pytest

import prd_planner


SNAPSHOT = {
    "prdId": "prd-1",
    "stories": [
        {"id": "S1", "title": "Schema", "priority": "critical", "estimate": 3},
        {"id": "S2", "title": "API", "priority": "high", "estimate": 5, "dependsOn": ["S1"]},
        {"id": "S3", "title": "UI", "priority": "medium", "estimate": 2, "dependsOn": ["S2"]},
        {"id": "S4", "title": "Docs", "status": "completed"},
    ],
}


@pytest.fixture
def snapshot_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("PLANNER_CAPACITY", "PLANNER_CAPACITY_MODE", "PLANNER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(SNAPSHOT))
    return str(path)


def run(capsys, *argv):
    code = prd_planner.main(list(argv))
    captured = capsys.readouterr()
    return code, captured


class TestCli:
    """Test prd_planner.main."""

    def test_graph(self, capsys, snapshot_path):
        code, captured = run(capsys, "graph", snapshot_path)
        assert code == 0
        data = json.loads(captured.out)
        assert data["prdId"] == "prd-1"
        assert [n["depth"] for n in data["nodes"]] == [0, 1, 2, 0]

    def test_validate_reports_blocked_stories(self, capsys, snapshot_path):
        code, captured = run(capsys, "validate", snapshot_path)
        assert code == 1
        data = json.loads(captured.out)
        assert data["valid"] is False
        assert {w["storyId"] for w in data["warnings"]} == {"S2", "S3"}

    def test_plan(self, capsys, snapshot_path):
        code, captured = run(capsys, "plan", snapshot_path, "--capacity", "5")
        assert code == 0
        data = json.loads(captured.out)
        assert [[s["storyId"] for s in sprint["stories"]] for sprint in data["sprints"]] == [["S1", "S3"], ["S2"]]
        assert data["capacity"] == 5
        assert data["unassignedStories"] == [{"storyId": "S4", "title": "Docs", "reason": "Already completed"}]

    def test_plan_uses_environment_defaults(self, capsys, snapshot_path, monkeypatch):
        monkeypatch.setenv("PLANNER_CAPACITY", "2")
        monkeypatch.setenv("PLANNER_CAPACITY_MODE", "count")
        code, captured = run(capsys, "plan", snapshot_path)
        data = json.loads(captured.out)
        assert data["capacityMode"] == "count"
        assert data["totalSprints"] == 2

    def test_plan_check_precedence(self, capsys, snapshot_path):
        code, captured = run(capsys, "plan", snapshot_path, "--capacity", "5", "--check-precedence")
        assert code == 1
        data = json.loads(captured.out)
        assert [(v["storyId"], v["blockerId"]) for v in data["precedenceViolations"]] == [("S3", "S2")]

    def test_plan_with_candidate_and_xlsx(self, capsys, snapshot_path, tmp_path):
        candidate = tmp_path / "candidate.json"
        candidate.write_text(json.dumps({"sprints": [{"storyIds": ["S1"]}, {"storyIds": ["S2"]}, {"storyIds": ["S3"]}]}))
        xlsx = tmp_path / "plan.xlsx"
        code, captured = run(
            capsys, "plan", snapshot_path, "--capacity", "5",
            "--candidate", str(candidate), "--xlsx", str(xlsx), "--check-precedence",
        )
        assert code == 0
        assert xlsx.read_bytes()[:2] == b"PK"
        assert json.loads(captured.out)["precedenceViolations"] == []

    def test_invalid_capacity_exits_2(self, capsys, snapshot_path):
        code, captured = run(capsys, "plan", snapshot_path, "--capacity", "0")
        assert code == 2
        assert "capacity must be a positive number" in captured.err
        assert captured.out == ""

    def test_bad_environment_exits_2(self, capsys, snapshot_path, monkeypatch):
        monkeypatch.setenv("PLANNER_CAPACITY_MODE", "hours")
        code, captured = run(capsys, "graph", snapshot_path)
        assert code == 2
        assert "Configuration error" in captured.err

    def test_missing_snapshot_exits_2(self, capsys, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        code, captured = run(capsys, "graph", str(tmp_path / "missing.json"))
        assert code == 2

    def test_next(self, capsys, snapshot_path):
        code, captured = run(capsys, "next", snapshot_path)
        assert code == 0
        assert json.loads(captured.out)["id"] == "S1"

    def test_estimates(self, capsys, snapshot_path):
        code, captured = run(capsys, "estimates", snapshot_path)
        data = json.loads(captured.out)
        assert data["totalPoints"] == 10
        assert data["unestimatedCount"] == 1
