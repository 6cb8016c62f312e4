"""Matrix report and CLI tests."""

import json

import pytest

from eventing_conformance.cli import main
from eventing_conformance.framework.report import (
    format_matrix,
    load_results,
    results_to_matrix,
    summarize,
    write_results,
)
from eventing_conformance.scenarios.base import ScenarioResult, ScenarioStatus, ScenarioStep


def _results():
    return [
        ScenarioResult(
            status=ScenarioStatus.PASS,
            duration_ms=12.5,
            channel="InMemoryChannel@messaging.conformance.dev/v1beta1",
            subscription_version="v1alpha1",
            step=ScenarioStep.DONE,
        ),
        ScenarioResult(
            status=ScenarioStatus.FAIL,
            duration_ms=40.0,
            channel="InMemoryChannel@messaging.conformance.dev/v1beta1",
            subscription_version="v1beta1",
            step=ScenarioStep.VERIFY,
            error_kind="DeliveryNotObserved",
            error_message="String 'x' not found in logs of subscriber 'logger'\nmore",
            expected_payload="x",
        ),
    ]


def test_write_and_load_round_trip(tmp_path):
    path = tmp_path / "out" / "matrix.json"
    matrix = write_results(_results(), path)

    assert load_results(path) == json.loads(json.dumps(matrix))
    cell = matrix["InMemoryChannel@messaging.conformance.dev/v1beta1"]["v1beta1"]
    assert cell["status"] == "fail"
    assert cell["step"] == "verify"


def test_format_matrix_lists_failures():
    matrix = results_to_matrix(_results())
    text = format_matrix(matrix)

    assert "CONFORMANCE MATRIX" in text
    assert "PASS" in text and "FAIL" in text
    assert "[verify] DeliveryNotObserved: String 'x' not found" in text
    assert "more" not in text


def test_summarize_counts_statuses(tmp_path):
    matrix = write_results(_results(), tmp_path / "m.json")
    assert summarize(matrix) == {"pass": 1, "fail": 1, "error": 0, "skip": 0}


def test_result_str():
    passed, failed = _results()
    assert str(passed).startswith("✓ PASS")
    assert str(failed).startswith("✗ FAIL [verify]")


@pytest.mark.timeout(30)
def test_cli_runs_matrix_and_writes_artifact(tmp_path, capsys):
    output = tmp_path / "conformance_matrix.json"

    with pytest.raises(SystemExit) as excinfo:
        main([
            "--channel", "InMemoryChannel",
            "--subscription-version", "v1beta1",
            "--poll-interval", "0.01",
            "--delivery-attempts", "200",
            "--output", str(output),
        ])

    assert excinfo.value.code == 0
    matrix = load_results(output)
    assert list(matrix) == ["InMemoryChannel@messaging.conformance.dev/v1beta1"]
    assert "1 passed" in capsys.readouterr().out


def test_cli_rejects_unknown_channel(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--channel", "NoSuchChannel"])

    assert excinfo.value.code == 2
    assert "Unknown channel kind" in capsys.readouterr().err
