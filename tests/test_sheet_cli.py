import json

import pytest
import xmltodict

from sheetval import sheet_cli
from sheetval.sheet_cli import EXIT_DIAGNOSTICS, EXIT_FAULT, main


@pytest.fixture
def sheet_file(tmp_path):
    path = tmp_path / "items.csv"
    path.write_text('name,price,tags,on_use\nBanana,12,"[0,1,2]","eat(1)"\n', encoding="utf-8")
    return path


def test_cli_prints_json_records(sheet_file, capsys):
    assert main([str(sheet_file)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == [{
        "name": "Banana",
        "price": 12,
        "tags": [0, 1, 2],
        "on_use": {"call": "eat", "params": [1], "text": "eat(1)"},
    }]


def test_cli_yaml_output(sheet_file, capsys):
    assert main([str(sheet_file), "--format", "yaml"]) == 0
    assert "name: Banana" in capsys.readouterr().out


def test_cli_xml_output_with_spaced_and_numeric_headers(tmp_path, capsys):
    path = tmp_path / "spaced.csv"
    path.write_text("item name,12\nBanana,3\n", encoding="utf-8")
    assert main([str(path), "--format", "xml"]) == 0
    out = capsys.readouterr().out
    assert "<item_name>Banana</item_name>" in out
    assert "<_12>3</_12>" in out
    assert xmltodict.parse(out) == {"records": {"record": {"item_name": "Banana", "_12": "3"}}}


def test_cli_serialize_failure_is_a_fault(sheet_file, capsys, monkeypatch):
    def broken(value, *, fmt):
        raise ValueError("no can do")

    monkeypatch.setattr(sheet_cli, "serialize", broken)
    assert main([str(sheet_file), "--format", "xml"]) == EXIT_FAULT
    assert "no can do" in capsys.readouterr().err


def test_cli_reports_diagnostics_and_strict_exit(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text('a\n"[1,}]"\n', encoding="utf-8")
    assert main([str(path)]) == 0
    assert "field-parse-fault" in capsys.readouterr().err
    assert main([str(path), "--strict"]) == EXIT_DIAGNOSTICS


def test_cli_empty_header_is_a_fault(tmp_path, capsys):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    assert main([str(path)]) == EXIT_FAULT
    assert "Error on row 1" in capsys.readouterr().err


def test_cli_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.csv")]) == EXIT_FAULT
    assert "Error:" in capsys.readouterr().err


def test_cli_config_and_max_depth_override(tmp_path, capsys):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("max-depth: 1\n", encoding="utf-8")
    path = tmp_path / "deep.csv"
    path.write_text('v\n"[[1]]"\n', encoding="utf-8")

    assert main([str(path), "--config", str(cfg)]) == 0
    assert json.loads(capsys.readouterr().out) == [{"v": "[[1]]"}]

    assert main([str(path), "--config", str(cfg), "--max-depth", "4"]) == 0
    assert json.loads(capsys.readouterr().out) == [{"v": [[1]]}]
