"""
Classifies raw cell text and parses it into sheet values.

Classification order (first match wins):

  1. blank                      -> String("")
  2. "fully quoted"             -> String, quotes stripped and "" unescaped
  3. -12.5                      -> Number
  4. [a, b, ...]                -> Array
  5. {key: value, ...}          -> Struct
  6. name(arg, ...)             -> FunctionRef (never called here)
  7. anything else              -> String, verbatim

Composite literals are split on top-level separators only: quote spans and
all three bracket kinds are tracked together, so `["a,b", {x: [2,3]}]` has
exactly two elements. As in a CSV row, only a quote that starts an element
opens a span, so the inch marks in `[5" pipe, 6" pipe]` are plain text.

A field that looks like a literal but does not parse falls back to String of
its text and a single diagnostic is recorded; one bad cell never aborts its
row. Diagnostics raised on the way to a fault are discarded with it.
"""

import logging
import re
from typing import Iterator, List, Optional, Tuple

from sheetval.sheet_config import DEFAULT_MAX_DEPTH, ParseOptions
from sheetval.sheet_datatypes import Array, FunctionRef, Number, SheetValue, String, Struct
from sheetval.sheet_errors import DepthExceeded, Diagnostic, FieldParseFault

logger = logging.getLogger(__name__)

QUOTE = '"'
_OPENERS = {'[': ']', '{': '}', '(': ')'}
_CLOSERS = frozenset(_OPENERS.values())
_ELEMENT_SEPS = frozenset(',:')

_NUMBER_RE = re.compile(r'-?[0-9]+(?:\.[0-9]+)?')
# Word characters without a leading digit, then an opening paren with no space.
_CALL_HEAD_RE = re.compile(r'([^\W\d]\w*)\(')


# ---------------------------------------------------------------------------
# Top-level splitting
# ---------------------------------------------------------------------------

def _closing_quote(text: str, open_pos: int) -> int:
    """Returns the index of the quote closing the span opened at `open_pos`."""
    i = open_pos + 1
    while True:
        j = text.find(QUOTE, i)
        if j < 0:
            raise FieldParseFault("unterminated quote", text)
        if text.startswith(QUOTE, j + 1):
            i = j + 2
            continue
        return j


def _outside_quotes(text: str, start: int = 0) -> Iterator[Tuple[int, str]]:
    """Yields (index, char) for every character not inside a quoted element.

    As in a CSV row, a quote opens a span only where an element starts: at
    `start`, or after an opening bracket, a comma or a colon, with leading
    whitespace skipped. Anywhere else it is a literal character, so
    `5" pipe` is plain text. Inside a span `""` is an escaped quote.
    """
    element_start = True
    i, n = start, len(text)
    while i < n:
        ch = text[i]
        if ch == QUOTE and element_start:
            i = _closing_quote(text, i) + 1
            element_start = False
            continue
        if not ch.isspace():
            element_start = ch in _OPENERS or ch in _ELEMENT_SEPS
        yield i, ch
        i += 1


def split_top_level(text: str, sep: str = ',', maxsplit: int = -1) -> List[str]:
    """Splits `text` on `sep` where it sits outside quotes and brackets.

    Raises FieldParseFault for a mismatched closer, an unclosed bracket or an
    unterminated quote.
    """
    parts: List[str] = []
    stack: List[str] = []
    start = 0
    for i, ch in _outside_quotes(text):
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                raise FieldParseFault(f"unexpected {ch!r} at offset {i}", text)
        elif ch == sep and not stack and (maxsplit < 0 or len(parts) < maxsplit):
            parts.append(text[start:i])
            start = i + 1
    if stack:
        raise FieldParseFault(f"missing closing {stack[-1]!r}", text)
    parts.append(text[start:])
    return parts


def matching_close(text: str, open_pos: int) -> int:
    """Returns the index of the bracket closing the one at `open_pos`."""
    stack: List[str] = []
    for i, ch in _outside_quotes(text, open_pos):
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                raise FieldParseFault(f"unexpected {ch!r} at offset {i}", text)
            if not stack:
                return i
    raise FieldParseFault(f"missing closing {_OPENERS[text[open_pos]]!r}", text)


def unquote(text: str) -> Optional[str]:
    """Returns the unescaped content of a fully quoted string, else None."""
    if len(text) < 2 or text[0] != QUOTE or text[-1] != QUOTE:
        return None
    inner = text[1:-1]
    # Every inner quote must be part of a doubled pair.
    if QUOTE in inner.replace(QUOTE * 2, ''):
        return None
    return inner.replace(QUOTE * 2, QUOTE)


def is_number(text: str) -> bool:
    return _NUMBER_RE.fullmatch(text) is not None


# ---------------------------------------------------------------------------
# Value parser
# ---------------------------------------------------------------------------

class ValueParser:
    """Turns one raw field string into exactly one SheetValue."""

    def __init__(self, options: Optional[ParseOptions] = None):
        self.options = options or ParseOptions()

    @property
    def max_depth(self) -> int:
        return self.options.max_depth

    def parse(self, text: str, *,
              diagnostics: Optional[List[Diagnostic]] = None,
              row: Optional[int] = None,
              column: Optional[int] = None) -> SheetValue:
        """Parses a field. Faults are recovered here and never raised."""
        trimmed = text.strip()
        ctx = _FieldContext(row, column)
        try:
            value = self._parse(trimmed, 0, ctx)
        except FieldParseFault as e:
            reason = str(e)
        except RecursionError:
            reason = "nesting too deep for the interpreter stack"
        else:
            ctx.commit(diagnostics)
            return value

        logger.debug("field parse fault (row=%s, column=%s): %s: %r", row, column, reason, trimmed)
        if diagnostics is not None:
            diagnostics.append(Diagnostic('field-parse-fault', f"{reason}; kept as text", row, column, trimmed))
        return String(trimmed)

    def _parse(self, text: str, depth: int, ctx: '_FieldContext') -> SheetValue:
        text = text.strip()
        if not text:
            return String("")

        s = unquote(text)
        if s is not None:
            return String(s)

        if is_number(text):
            return Number(float(text))

        match text[0], text[-1]:
            case '[', ']':
                return self._parse_array(text, depth + 1, ctx)
            case '{', '}':
                return self._parse_struct(text, depth + 1, ctx)
            case _, ')':
                ref = self._parse_call(text, depth + 1, ctx)
                if ref is not None:
                    return ref
        return String(text)

    def _enter(self, depth: int, text: str):
        if depth > self.options.max_depth:
            raise DepthExceeded(self.options.max_depth, text)

    def _parse_array(self, text: str, depth: int, ctx: '_FieldContext') -> Array:
        self._enter(depth, text)
        inner = text[1:-1]
        if not inner.strip():
            return Array()
        return Array(self._parse(part, depth, ctx) for part in split_top_level(inner))

    def _parse_struct(self, text: str, depth: int, ctx: '_FieldContext') -> Struct:
        self._enter(depth, text)
        inner = text[1:-1]
        if not inner.strip():
            return Struct()
        entries = {}
        for pair in split_top_level(inner):
            kv = split_top_level(pair, ':', maxsplit=1)
            key = kv[0].strip()
            if len(kv) < 2 or not key:
                logger.debug("dropping malformed struct pair %r", pair)
                ctx.add('malformed-pair', "struct entry is not 'key: value'; dropped", pair.strip())
                continue
            entries[key] = self._parse(kv[1], depth, ctx)
        return Struct(entries)

    def _parse_call(self, text: str, depth: int, ctx: '_FieldContext') -> Optional[FunctionRef]:
        m = _CALL_HEAD_RE.match(text)
        if m is None:
            return None
        open_pos = m.end() - 1
        if matching_close(text, open_pos) != len(text) - 1:
            # e.g. `f(a) + g(b)`: the call ends before the text does.
            return None
        self._enter(depth, text)
        inner = text[open_pos + 1:-1]
        if inner.strip():
            params = [self._parse(part, depth, ctx) for part in split_top_level(inner)]
        else:
            params = []
        return FunctionRef(m.group(1), params, text)


class _FieldContext:
    """Diagnostics for the field being parsed, held until the field is done."""
    __slots__ = ('pending', 'row', 'column')

    def __init__(self, row: Optional[int], column: Optional[int]):
        self.pending: List[Diagnostic] = []
        self.row = row
        self.column = column

    def add(self, kind, message: str, text: Optional[str] = None):
        self.pending.append(Diagnostic(kind, message, self.row, self.column, text))

    def commit(self, diagnostics: Optional[List[Diagnostic]]):
        if diagnostics is not None:
            diagnostics.extend(self.pending)


def parse_value(text: str, *, max_depth: int = DEFAULT_MAX_DEPTH,
                diagnostics: Optional[List[Diagnostic]] = None) -> SheetValue:
    """Parses one raw field with default options."""
    return ValueParser(ParseOptions(max_depth=max_depth)).parse(text, diagnostics=diagnostics)
