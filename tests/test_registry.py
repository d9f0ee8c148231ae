import json
from pathlib import Path

import pytest

from solveitsmart.registry import Problem, ProblemRegistry, load_problems

ROOT = Path(__file__).resolve().parents[1]


def test_load_problems_reads_camel_case_records(tmp_path) -> None:
    """Records use the published camelCase keys for optional fields."""
    path = tmp_path / "problems.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": 3,
                    "body": "Find the area.",
                    "figure": "rectangle",
                    "techniques": ["Draw a picture", "Use an equation"],
                    "figureDescription": "A 2w by w rectangle.",
                    "finalAnswer": "50",
                    "solution": "w = 5",
                }
            ]
        ),
        encoding="utf-8",
    )

    registry = load_problems(str(path))
    problem = registry.get("3")

    assert problem.figure == "rectangle"
    assert problem.image is None
    assert problem.figure_description == "A 2w by w rectangle."
    assert problem.final_answer == "50"
    assert problem.technique_label == "Draw a picture, Use an equation"


def test_load_problems_skips_malformed_records(tmp_path) -> None:
    """Records without an id or body are dropped."""
    path = tmp_path / "problems.json"
    path.write_text(json.dumps([{"id": "1", "body": "ok"}, {"body": "no id"}, "junk"]))
    registry = load_problems(str(path))
    assert [p.id for p in registry.list()] == ["1"]


def test_load_problems_missing_file(tmp_path) -> None:
    """A missing file yields an empty registry."""
    assert load_problems(str(tmp_path / "absent.json")).list() == []


def test_load_problems_invalid_json(tmp_path) -> None:
    """Undecodable content yields an empty registry."""
    path = tmp_path / "problems.json"
    path.write_text("{not json")
    assert load_problems(str(path)).list() == []


def test_registry_get_unknown_id() -> None:
    registry = ProblemRegistry([Problem(id="1", body="b")])
    with pytest.raises(KeyError):
        registry.get("2")


def test_bundled_problem_file_loads() -> None:
    """The sample data shipped with the repo is valid."""
    registry = load_problems(str(ROOT / "data" / "problems.json"))
    assert registry.get("2").final_answer == "61"
