import json

import pytest
import xmltodict
import yaml

from sheetval import load_sheet
from sheetval.sheet_config import ParseOptions
from sheetval.sheet_datatypes import Array, FunctionRef, Number, String, Struct
from sheetval.sheet_serialize import deserialize, serialize, to_builtin, xml_name


# --- to_builtin ---

def test_to_builtin_converts_every_value_kind():
    value = Struct({
        "name": String("Banana"),
        "price": Number(12),
        "tags": Array([Number(0.5), String("x")]),
        "on_use": FunctionRef("heal", [Number(5)], "heal(5)"),
    })
    assert to_builtin(value) == {
        "name": "Banana",
        "price": 12.0,
        "tags": [0.5, "x"],
        "on_use": {"call": "heal", "params": [5.0], "text": "heal(5)"},
    }


def test_to_builtin_int_numbers():
    assert to_builtin(Array([Number(2), Number(2.5)]), int_numbers=True) == [2, 2.5]
    assert isinstance(to_builtin(Number(2), int_numbers=True), int)


def test_to_builtin_records():
    res = load_sheet("a,b\n1,[x]\n")
    assert to_builtin(res.records) == [{"a": 1.0, "b": ["x"]}]


# --- serialize ---

def test_serialize_json_and_yaml():
    res = load_sheet('name,price,tags\nBanana,12,"[0,1,2]"\n')
    expected = [{"name": "Banana", "price": 12, "tags": [0, 1, 2]}]
    assert json.loads(serialize(res.records, fmt="json")) == expected
    assert yaml.safe_load(serialize(res.records, fmt="yaml")) == expected


def test_serialize_xml_wraps_records():
    res = load_sheet("name\nBanana\n")
    out = serialize(res.records, fmt="xml")
    assert "<records>" in out
    assert "<name>Banana</name>" in out
    assert xmltodict.parse(out) == {"records": {"record": {"name": "Banana"}}}


def test_serialize_xml_renames_illegal_keys():
    res = load_sheet('item name,12,data\nBanana,3,"{""a key"": 1, @x: 2}"\n')
    back = xmltodict.parse(serialize(res.records, fmt="xml"))
    assert back == {"records": {"record": {
        "item_name": "Banana",
        "_12": "3",
        "data": {"_a_key_": "1", "_x": "2"},
    }}}


@pytest.mark.parametrize("key, expected", [
    ("name", "name"),
    ("item name", "item_name"),
    ("12", "_12"),
    ("-x", "_-x"),
    ("", "_"),
    ("a.b-c", "a.b-c"),
])
def test_xml_name(key, expected):
    assert xml_name(key) == expected


def test_serialize_unknown_format():
    with pytest.raises(ValueError):
        serialize([], fmt="csv")


# --- deserialize ---

def test_deserialize_formats():
    assert deserialize(b'{"max-depth": 3}', fmt="json") == {"max-depth": 3}
    assert deserialize("max-depth: 3\n", fmt="yaml") == {"max-depth": 3}
    assert deserialize("max_depth = 3\n", fmt="toml") == {"max_depth": 3}
    # Declared JSON that is really YAML still loads.
    assert deserialize("max-depth: 3\n", fmt="json") == {"max-depth": 3}


def test_deserialize_rejects_other_formats():
    with pytest.raises(ValueError):
        deserialize("<a/>", fmt="xml")


# --- ParseOptions ---

def test_options_from_mapping_accepts_kebab_case():
    opts = ParseOptions.from_mapping({"max-depth": "8", "skip-blank-rows": "no"})
    assert opts.max_depth == 8
    assert opts.skip_blank_rows is False
    assert opts.trim_header is True


def test_options_reject_unknown_keys_and_bad_depth():
    with pytest.raises(ValueError):
        ParseOptions.from_mapping({"depth": 3})
    with pytest.raises(ValueError):
        ParseOptions(max_depth=0)
    with pytest.raises(ValueError):
        ParseOptions.from_mapping({"trim_header": "maybe"})


@pytest.mark.parametrize("name, body", [
    ("opts.yaml", "sheetval:\n  max-depth: 5\n"),
    ("opts.json", '{"max_depth": 5}'),
    ("opts.toml", "[sheetval]\nmax_depth = 5\n"),
])
def test_options_from_file(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    assert ParseOptions.from_file(path).max_depth == 5


def test_options_from_file_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "opts.ini"
    path.write_text("max_depth=5", encoding="utf-8")
    with pytest.raises(ValueError):
        ParseOptions.from_file(path)


def test_options_merged_ignores_none():
    opts = ParseOptions().merged(max_depth=None, skip_blank_rows=False)
    assert opts.max_depth == 64
    assert opts.skip_blank_rows is False
