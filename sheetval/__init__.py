"""sheetval - typed values from published-sheet CSV."""

from sheetval.sheet_config import ParseOptions
from sheetval.sheet_csv import RawRow, RowSplitter, split_rows, tokenize_fields
from sheetval.sheet_datatypes import Array, FunctionRef, Number, Record, SheetValue, String, Struct
from sheetval.sheet_delivery import PendingLoads, SheetTransport
from sheetval.sheet_errors import (
    DepthExceeded, Diagnostic, EmptyHeader, FieldParseFault, FunctionNotFound,
    ParseFault, RowMalformed, SheetError, TransportFailure,
)
from sheetval.sheet_invoke import FunctionRegistry, InvokeResult, ainvoke, invoke, sheet_api_method
from sheetval.sheet_parser import ValueParser, parse_value, split_top_level
from sheetval.sheet_runtime import LoadResult, SheetLoader, build_record, load_sheet

__all__ = [
    "Array",
    "DepthExceeded",
    "Diagnostic",
    "EmptyHeader",
    "FieldParseFault",
    "FunctionNotFound",
    "FunctionRef",
    "FunctionRegistry",
    "InvokeResult",
    "LoadResult",
    "Number",
    "ParseFault",
    "ParseOptions",
    "PendingLoads",
    "RawRow",
    "Record",
    "RowMalformed",
    "RowSplitter",
    "SheetError",
    "SheetLoader",
    "SheetTransport",
    "SheetValue",
    "String",
    "Struct",
    "TransportFailure",
    "ValueParser",
    "ainvoke",
    "build_record",
    "invoke",
    "load_sheet",
    "parse_value",
    "sheet_api_method",
    "split_rows",
    "split_top_level",
    "tokenize_fields",
]
