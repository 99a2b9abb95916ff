"""
Error taxonomy and diagnostics for sheet loading.

Only `EmptyHeader` (and a transport failure, which never reaches the parser)
stops a load. Everything else is recovered locally and reported as a
`Diagnostic` alongside the partial result.
"""

from dataclasses import dataclass
from typing import Literal, Optional


class SheetError(Exception):
    """Base class for all sheetval errors."""


class TransportFailure(SheetError):
    """The fetch collaborator reported a failure; there is no payload to parse."""
    def __init__(self, request_id: str, reason: Optional[str] = None):
        msg = f"transport failed for request {request_id!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.request_id = request_id
        self.reason = reason


class RowMalformed(SheetError):
    """A quoted span was still open at end of document."""


class FieldParseFault(SheetError):
    """A field looked like a literal but did not parse fully."""
    def __init__(self, message: str, text: Optional[str] = None):
        super().__init__(message)
        self.text = text


class DepthExceeded(FieldParseFault):
    """Nested literals went deeper than the configured guard."""
    def __init__(self, max_depth: int, text: Optional[str] = None):
        super().__init__(f"nesting deeper than max_depth={max_depth}", text)
        self.max_depth = max_depth


class EmptyHeader(SheetError):
    """The document has no header row, or the header has no names."""


class FunctionNotFound(SheetError):
    def __init__(self, name: str):
        super().__init__(f"no function registered as {name!r}")
        self.name = name


DiagnosticKind = Literal['row-malformed', 'field-parse-fault', 'malformed-pair', 'extra-fields']


@dataclass(frozen=True)
class Diagnostic:
    """A recoverable fault found while loading."""
    kind: DiagnosticKind
    message: str
    row: Optional[int] = None      # 1-based physical line where the row starts
    column: Optional[int] = None   # 1-based field position
    text: Optional[str] = None     # offending raw text

    def format(self) -> str:
        where = []
        if self.row is not None:
            where.append(f"row {self.row}")
        if self.column is not None:
            where.append(f"column {self.column}")
        prefix = f"[{self.kind}]"
        if where:
            prefix = f"{prefix} {', '.join(where)}"
        msg = f"{prefix}: {self.message}"
        if self.text is not None:
            msg = f"{msg}\n  {self.text!r}"
        return msg


@dataclass(frozen=True)
class ParseFault:
    """The first unrecoverable issue of a load."""
    message: str
    row: Optional[int] = None
    column: Optional[int] = None

    def format(self) -> str:
        if self.row is None:
            return self.message
        col_info = f", col {self.column}" if self.column is not None else ""
        return f"Error on row {self.row}{col_info}: {self.message}"
