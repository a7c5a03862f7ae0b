import runpy
from pathlib import Path

import pytest

import regression_suite
from regression_suite import SCENARIOS

RUNNER = Path(__file__).with_name("run_regression.py")


@pytest.mark.parametrize("scenario", SCENARIOS, ids=lambda scenario: scenario.__name__)
def test_scenario(scenario):
    assert scenario() is True


def test_runner_reports_pass_summary(monkeypatch, capsys):
    monkeypatch.setattr(regression_suite, "run_all", lambda: [("scenario_a", True, ""), ("scenario_b", True, "")])

    runpy.run_path(str(RUNNER), run_name="__main__")

    out = capsys.readouterr().out
    assert "PASS: scenario_a" in out
    assert out.strip().endswith("All 2 battle royale scenarios passed.")


def test_runner_exits_nonzero_on_failure(monkeypatch, capsys):
    monkeypatch.setattr(regression_suite, "run_all", lambda: [("scenario_a", False, "boom")])

    with pytest.raises(SystemExit) as exc:
        runpy.run_path(str(RUNNER), run_name="__main__")

    assert exc.value.code == 1
    assert "FAIL: scenario_a -> boom" in capsys.readouterr().out
