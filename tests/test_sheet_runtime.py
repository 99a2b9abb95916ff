import pytest
from sheetval import load_sheet
from sheetval.sheet_config import ParseOptions
from sheetval.sheet_datatypes import Array, FunctionRef, Number, Record, String, Struct
from sheetval.sheet_runtime import LoadResult, SheetLoader, build_record


def assert_ok(res: LoadResult):
    assert res.status == "success", f"expected success, got {res.format_error()}"


# --- Record builder ---

def test_build_record_zips_header_and_fields():
    rec = build_record(["name", "price"], ["Banana", "12"], row=2)
    assert rec == {"name": String("Banana"), "price": Number(12)}
    assert rec.row == 2


def test_build_record_omits_missing_trailing_columns():
    diagnostics = []
    rec = build_record(["a", "b", "c"], ["1"], diagnostics=diagnostics)
    assert rec == {"a": Number(1)}
    assert "b" not in rec and "c" not in rec
    assert diagnostics == []


def test_build_record_drops_extra_fields_with_diagnostic():
    diagnostics = []
    rec = build_record(["a"], ["1", "2", "[3]]"], row=5, diagnostics=diagnostics)
    assert rec == {"a": Number(1)}
    kinds = [d.kind for d in diagnostics]
    # Extra fields are still parsed, so their faults are reported too.
    assert kinds == ['field-parse-fault', 'extra-fields']
    extra = diagnostics[-1]
    assert (extra.row, extra.column) == (5, 2)
    assert "2 field(s)" in extra.message


def test_build_record_duplicate_header_last_wins():
    rec = build_record(["x", "x"], ["1", "2"])
    assert rec["x"] == Number(2)
    assert rec.fields == (("x", Number(1)), ("x", Number(2)))


# --- Loading ---

def test_end_to_end_example():
    res = load_sheet('name,price,tags\nBanana,12,"[0,1,2]"\n')
    assert_ok(res)
    assert res.header == ["name", "price", "tags"]
    assert len(res) == 1
    assert res.records[0] == {
        "name": String("Banana"),
        "price": Number(12),
        "tags": Array([Number(0), Number(1), Number(2)]),
    }
    assert res.diagnostics == []


def test_load_sheet_with_every_value_kind():
    text = (
        'id,label,data,action\n'
        '1,"""quoted""","{hp: 10, drops: [coin, ""gem""]}","on_collect(""banana"", 12)"\n'
        '2,plain words,,reset()\n'
    )
    res = load_sheet(text)
    assert_ok(res)
    first, second = res.records
    assert first["id"] == Number(1)
    assert first["label"] == String("quoted")
    assert first["data"] == Struct({
        "hp": Number(10),
        "drops": Array([String("coin"), String("gem")]),
    })
    assert first["action"] == FunctionRef(
        "on_collect", [String("banana"), Number(12)], 'on_collect("banana", 12)')
    assert second["label"] == String("plain words")
    assert second["data"] == String("")
    assert second["action"] == FunctionRef("reset", [], "reset()")
    assert [r.row for r in res.records] == [2, 3]


def test_unterminated_quote_keeps_preceding_rows():
    text = 'name,qty\nApple,1\nPear,2\nPlum,"3\n'
    res = load_sheet(text)
    assert_ok(res)
    assert [r["name"] for r in res.records] == [String("Apple"), String("Pear"), String("Plum")]
    assert res.records[2]["qty"] == Number(3)
    assert [d.kind for d in res.diagnostics] == ['row-malformed']
    assert res.diagnostics[0].row == 4


def test_bad_field_does_not_abort_row_or_document():
    res = load_sheet('a,b\n"[1,[2]",x\n{k: [1},ok\n')
    assert_ok(res)
    assert res.records[0] == {"a": String("[1,[2]"), "b": String("x")}
    assert res.records[1] == {"a": String("{k: [1}"), "b": String("ok")}
    assert [(d.kind, d.row, d.column) for d in res.diagnostics] == [
        ('field-parse-fault', 2, 1),
        ('field-parse-fault', 3, 1),
    ]


def test_short_rows_omit_columns():
    res = load_sheet("a,b,c\n1\n1,2,3\n")
    assert_ok(res)
    assert list(res.records[0]) == ["a"]
    assert list(res.records[1]) == ["a", "b", "c"]
    assert res.column("c") == [Number(3)]


def test_header_only_document_has_no_records():
    res = load_sheet("a,b\n")
    assert_ok(res)
    assert res.records == []
    assert res.header == ["a", "b"]


@pytest.mark.parametrize("text", ["", "\n\n", ",,\n1,2"], ids=["empty", "blank_lines", "empty_names"])
def test_empty_header_halts(text):
    res = load_sheet(text)
    assert res.status == "error"
    assert res.records == []
    assert res.error is not None
    assert res.format_error().startswith("Error on row 1")


def test_header_names_are_trimmed_raw_text():
    res = load_sheet(' name , "12" \nx,y\n')
    assert res.header == ["name", "12"]
    assert res.records[0] == {"name": String("x"), "12": String("y")}


def test_options_flow_into_parser():
    loader = SheetLoader(ParseOptions(max_depth=1, skip_blank_rows=False))
    res = loader.load("v\n[[1]]\n\n[2]\n")
    assert_ok(res)
    assert [r.get("v") for r in res.records] == [String("[[1]]"), String(""), Array([Number(2)])]
    assert len(res.diagnostics) == 1


def test_function_refs_collected_from_result():
    res = load_sheet("name,on_use\nPotion,heal(5)\nRock,\nKey,open_door(\"north\")\n")
    refs = res.function_refs()
    assert [r.name for r in refs] == ["heal", "open_door"]


def test_format_diagnostics_mentions_location():
    res = load_sheet("a\n[1\n")
    res2 = load_sheet("a\n{x}\n")
    assert res.diagnostics == []  # `[1` does not end with `]`, so it is plain text
    assert "row 2, column 1" in res2.format_diagnostics()
    assert "malformed-pair" in res2.format_diagnostics()


def test_records_are_plain_record_objects():
    res = load_sheet("a\n1\n")
    assert isinstance(res.records[0], Record)
    assert list(iter(res)) == res.records
