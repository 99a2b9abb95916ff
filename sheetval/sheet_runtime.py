# sheet_runtime.py

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Literal, Optional, Sequence

from sheetval.sheet_config import ParseOptions
from sheetval.sheet_csv import RawRow, RowSplitter, tokenize_fields
from sheetval.sheet_datatypes import FunctionRef, Record
from sheetval.sheet_errors import Diagnostic, EmptyHeader, ParseFault, RowMalformed
from sheetval.sheet_invoke import FunctionRegistry, InvokeResult, ainvoke, invoke
from sheetval.sheet_parser import ValueParser

logger = logging.getLogger(__name__)


# ===================================================================
# 1. Record building
# ===================================================================

def build_record(header: Sequence[str], fields: Sequence[str], *,
                 parser: Optional[ValueParser] = None,
                 row: Optional[int] = None,
                 diagnostics: Optional[List[Diagnostic]] = None) -> Record:
    """Zips header names with one data row's fields, parsing each field.

    Missing trailing columns are left out of the record. Extra fields are
    parsed (so their faults are still reported) but cannot be addressed by
    name, so they are dropped.
    """
    parser = parser or ValueParser()
    pairs = []
    for col, raw in enumerate(fields, start=1):
        value = parser.parse(raw, diagnostics=diagnostics, row=row, column=col)
        if col <= len(header):
            pairs.append((header[col - 1], value))
    extra = len(fields) - len(header)
    if extra > 0:
        logger.debug("row %s has %d field(s) beyond the header; dropped", row, extra)
        if diagnostics is not None:
            diagnostics.append(Diagnostic(
                'extra-fields',
                f"{extra} field(s) beyond the {len(header)} header column(s) dropped",
                row, len(header) + 1,
            ))
    return Record(pairs, row=row)


# ===================================================================
# 2. Load results
# ===================================================================

@dataclass
class LoadResult:
    """The structured result of loading one sheet."""
    status: Literal['success', 'error']
    records: List[Record] = field(default_factory=list)
    header: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    error: Optional[ParseFault] = None

    @property
    def ok(self) -> bool:
        return self.status == 'success'

    def format_error(self) -> str:
        """Formats the halting fault with its location, if any."""
        if self.status != 'error':
            return ""
        if self.error is None:
            return "Unknown error"
        return self.error.format()

    def format_diagnostics(self) -> str:
        return "\n".join(d.format() for d in self.diagnostics)

    def column(self, name: str) -> List[Any]:
        """Values of one column across all records; rows lacking it are skipped."""
        return [r[name] for r in self.records if name in r]

    def function_refs(self) -> List[FunctionRef]:
        return [ref for r in self.records for _, ref in r.function_refs()]

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


# ===================================================================
# 3. Loader
# ===================================================================

class SheetLoader:
    """Parses CSV payloads into records and invokes the calls they carry.

    The loader holds no per-load state, so one instance can serve any number
    of loads, including from several threads.
    """

    def __init__(self, options: Optional[ParseOptions] = None,
                 registry: Optional[FunctionRegistry] = None):
        self.options = options or ParseOptions()
        self.parser = ValueParser(self.options)
        self.registry = registry if registry is not None else FunctionRegistry()

    def rows(self, text: str) -> RowSplitter:
        return RowSplitter(text, skip_blank_rows=self.options.skip_blank_rows)

    def read_header(self, row: RawRow) -> List[str]:
        names = tokenize_fields(row.text)
        if self.options.trim_header:
            names = [n.strip() for n in names]
        return names

    def load(self, text: str) -> LoadResult:
        """The main entry point: parse a whole payload synchronously."""
        diagnostics: List[Diagnostic] = []
        try:
            return self._load(text, diagnostics)
        except EmptyHeader as e:
            logger.warning("sheet has no usable header: %s", e)
            return LoadResult(
                status='error',
                diagnostics=diagnostics,
                error=ParseFault(str(e), row=1),
            )

    def _load(self, text: str, diagnostics: List[Diagnostic]) -> LoadResult:
        rows = iter(self.rows(text))
        first = next(rows, None)
        if first is None:
            raise EmptyHeader("document is empty")
        if first.unterminated:
            self._report_unterminated(first, diagnostics)
        header = self.read_header(first)
        if not any(header):
            raise EmptyHeader("header row has no column names")

        records = list(self._records(header, rows, diagnostics))
        logger.debug("loaded %d record(s), %d diagnostic(s)", len(records), len(diagnostics))
        return LoadResult(status='success', records=records, header=header, diagnostics=diagnostics)

    def _records(self, header: List[str], rows: Iterable[RawRow],
                 diagnostics: List[Diagnostic]) -> Iterable[Record]:
        for row in rows:
            if row.unterminated:
                self._report_unterminated(row, diagnostics)
            fields = tokenize_fields(row.text)
            yield build_record(header, fields, parser=self.parser, row=row.line, diagnostics=diagnostics)

    def _report_unterminated(self, row: RawRow, diagnostics: List[Diagnostic]):
        fault = RowMalformed("unterminated quote at end of document; row salvaged as-is")
        logger.debug("row starting on line %d: %s", row.line, fault)
        diagnostics.append(Diagnostic('row-malformed', str(fault), row.line))

    def invoke(self, ref: FunctionRef, override_params: Optional[Sequence[Any]] = None) -> InvokeResult:
        return invoke(ref, self.registry, override_params)

    async def ainvoke(self, ref: FunctionRef, override_params: Optional[Sequence[Any]] = None) -> InvokeResult:
        return await ainvoke(ref, self.registry, override_params)


def load_sheet(text: str, options: Optional[ParseOptions] = None) -> LoadResult:
    """Parses a payload with a throwaway loader."""
    return SheetLoader(options).load(text)
