"""
Splits CSV text into rows and rows into raw field strings.

Quoting follows RFC 4180: `"` opens and closes a quoted span, and `""`
inside a span is one literal quote. Newlines inside a span belong to the
row. Nothing here raises on malformed input; an open quote at the end of
the document is reported on the last row instead.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List

logger = logging.getLogger(__name__)

QUOTE = '"'
SEPARATOR = ','


@dataclass(frozen=True)
class RawRow:
    """One logical CSV row before field tokenizing."""
    index: int          # 0-based position among emitted rows; 0 is the header
    line: int           # 1-based physical line the row starts on
    text: str
    unterminated: bool = False


class RowSplitter:
    """Lazy, restartable iterable of the rows in a CSV payload.

    Each call to iter() starts over from the beginning of the text.
    """

    def __init__(self, text: str, skip_blank_rows: bool = True):
        # Normalise CRLF once so quoted newlines and row boundaries agree.
        self.text = text.replace('\r\n', '\n')
        self.skip_blank_rows = skip_blank_rows

    def __iter__(self) -> Iterator[RawRow]:
        return self._rows()

    def _rows(self) -> Iterator[RawRow]:
        text = self.text
        n = len(text)
        in_quotes = False
        field_start = True
        start = 0
        line = 1
        start_line = 1
        index = 0

        pos = 0
        while pos < n:
            ch = text[pos]
            if in_quotes:
                if ch == QUOTE:
                    if pos + 1 < n and text[pos + 1] == QUOTE:
                        pos += 2
                        continue
                    in_quotes = False
                elif ch == '\n':
                    line += 1
                pos += 1
                continue

            # Same rule as tokenize_fields: only a quote opening a field starts a span.
            if ch == QUOTE and field_start:
                in_quotes = True
                field_start = False
            elif ch == SEPARATOR:
                field_start = True
            elif ch == '\n':
                line += 1
                row_text = text[start:pos]
                start = pos + 1
                field_start = True
                if not (self.skip_blank_rows and not row_text.strip()):
                    yield RawRow(index, start_line, row_text)
                    index += 1
                start_line = line
            elif not ch.isspace():
                field_start = False
            pos += 1

        rest = text[start:]
        if in_quotes:
            logger.debug("unterminated quote starting on line %d; salvaging remainder", start_line)
            yield RawRow(index, start_line, rest, unterminated=True)
        elif rest and not (self.skip_blank_rows and not rest.strip()):
            yield RawRow(index, start_line, rest)


def split_rows(text: str, skip_blank_rows: bool = True) -> Iterator[str]:
    """Yields only the text of each row."""
    for row in RowSplitter(text, skip_blank_rows=skip_blank_rows):
        yield row.text


def tokenize_fields(row_text: str) -> List[str]:
    """Splits one row into raw field strings.

    Quoted fields are unwrapped and unescaped; whitespace outside quotes is
    trimmed. An unterminated quote runs to the end of the row.
    """
    fields: List[str] = []
    n = len(row_text)
    i = 0
    while True:
        while i < n and row_text[i] != SEPARATOR and row_text[i].isspace():
            i += 1

        if i < n and row_text[i] == QUOTE:
            i += 1
            parts: List[str] = []
            while i < n:
                ch = row_text[i]
                if ch == QUOTE:
                    if i + 1 < n and row_text[i + 1] == QUOTE:
                        parts.append(QUOTE)
                        i += 2
                        continue
                    i += 1
                    break
                parts.append(ch)
                i += 1
            end = row_text.find(SEPARATOR, i)
            if end == -1:
                end = n
            # Stray text after the closing quote is kept, minus trailing space.
            value = ''.join(parts) + row_text[i:end].rstrip()
        else:
            end = row_text.find(SEPARATOR, i)
            if end == -1:
                end = n
            value = row_text[i:end].strip()

        fields.append(value)
        if end >= n:
            break
        i = end + 1
    return fields
