"""
Tests for the flowfund command-line interface.
"""

import json
from pathlib import Path

import pytest

from flowfundlab.cli import main

NETWORKS = Path(__file__).resolve().parent / "data" / "networks"


def _run(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


def test_example_discrete_is_loadable(capsys, tmp_path):
    assert _run(["example"]) == 0
    doc = json.loads(capsys.readouterr().out)
    assert [acc["id"] for acc in doc["accounts"]] == ["A", "B", "C", "D"]

    path = tmp_path / "example.json"
    path.write_text(json.dumps(doc), encoding="utf-8")
    # D has no incoming allocations and no balance: warnings only
    assert _run(["validate", "-i", str(path)]) == 2


def test_example_continuous(capsys):
    assert _run(["example", "--mode", "continuous"]) == 0
    doc = json.loads(capsys.readouterr().out)
    assert "nodes" in doc


def test_validate_json_output(capsys):
    code = _run(["validate", "-i", str(NETWORKS / "invalid.yaml"), "--format", "json"])
    report = json.loads(capsys.readouterr().out)
    assert code == 1
    assert report["valid"] is False
    assert report["problem_ids"] == ["a"]
    assert report["exit_code"] == 1


def test_validate_human_output(capsys):
    code = _run(["validate", "-i", str(NETWORKS / "flows.json")])
    out = capsys.readouterr().out
    assert code == 0
    assert "✅ Validation passed" in out


def test_validate_missing_file(capsys, tmp_path):
    code = _run(["validate", "-i", str(tmp_path / "absent.yaml")])
    assert code == 1
    assert "Validation failed" in capsys.readouterr().out


def test_distribute_writes_results(capsys, tmp_path):
    output = tmp_path / "result.json"
    code = _run(
        [
            "distribute",
            "-i",
            str(NETWORKS / "mutual_aid.yaml"),
            "--funding",
            "700",
            "-o",
            str(output),
        ]
    )
    out = capsys.readouterr().out
    assert code == 0
    assert "Distribution converged" in out

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["converged"] is True
    assert sum(data["final_balances"].values()) == pytest.approx(700.0)


def test_distribute_rejects_invalid_network(capsys):
    code = _run(["distribute", "-i", str(NETWORKS / "invalid.yaml"), "--funding", "10"])
    assert code == 1
    assert "Invalid network" in capsys.readouterr().err


def test_distribute_rejects_nodes_document(capsys):
    code = _run(["distribute", "-i", str(NETWORKS / "flows.json")])
    assert code == 1
    assert "requires a document with 'accounts'" in capsys.readouterr().err


def test_distribute_targeted(capsys):
    code = _run(["distribute", "-i", str(NETWORKS / "mutual_aid.yaml"), "--targeted"])
    assert code == 0
    assert "(funding 0.00)" in capsys.readouterr().out


def test_equilibrium(capsys, tmp_path):
    output = tmp_path / "steady.json"
    code = _run(
        ["equilibrium", "-i", str(NETWORKS / "flows.json"), "-o", str(output)]
    )
    out = capsys.readouterr().out
    assert code == 0
    assert "Equilibrium converged" in out

    data = json.loads(output.read_text(encoding="utf-8"))
    inflows = [node["total_inflow"] for node in data["nodes"]]
    assert inflows == pytest.approx([275.0] * 3, abs=0.01)
    assert data["overflow_node"] is None


def test_equilibrium_bad_epsilon(capsys):
    code = _run(
        ["equilibrium", "-i", str(NETWORKS / "flows.json"), "--epsilon", "-1"]
    )
    assert code == 1
    assert "epsilon" in capsys.readouterr().err
