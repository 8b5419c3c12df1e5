from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

from conftest import AIR_CSV, LCL_CSV

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "validate_rate_sheets.py"


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("validate_rate_sheets", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_unquotable_route_fails_the_check(script, tmp_path, capsys):
    csv_path = tmp_path / "air.csv"
    csv_path.write_text(AIR_CSV, encoding="utf-8")

    assert script.main(["--mode", "air", "--csv", str(csv_path)]) == 1

    out = capsys.readouterr().out
    assert "Frankfurt -> Santiago: no_band" in out
    assert "VALIDATION FAILED" in out


def test_fully_priced_sheet_passes(script, tmp_path, capsys):
    csv_path = tmp_path / "lcl.csv"
    csv_path.write_text(LCL_CSV, encoding="utf-8")

    assert script.main(["--mode", "lcl", "--csv", str(csv_path)]) == 0
    assert "VALIDATION OK" in capsys.readouterr().out
