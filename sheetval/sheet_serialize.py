from __future__ import annotations

import json
import re
import tomllib
from typing import Any
import collections.abc

import xmltodict
import yaml

from sheetval.sheet_datatypes import Array, FunctionRef, Number, Record, String, Struct

# Anything outside letters, digits, '_', '-' and '.' cannot appear in an XML name.
_XML_NAME_BAD_RE = re.compile(r'[^\w.-]')


# --------------------------
# Helpers
# --------------------------

def to_builtin(obj: Any, *, int_numbers: bool = False) -> Any:
    """Converts sheet values and records into plain Python data.

    FunctionRefs become {'call', 'params', 'text'} dicts; nothing is invoked.
    """
    match obj:
        case String(text):
            return text
        case Number(value):
            if int_numbers and value.is_integer():
                return int(value)
            return value
        case Array(items):
            return [to_builtin(x, int_numbers=int_numbers) for x in items]
        case Struct(entries):
            return {k: to_builtin(v, int_numbers=int_numbers) for k, v in entries.items()}
        case FunctionRef(name, params, original_text):
            return {
                'call': name,
                'params': [to_builtin(p, int_numbers=int_numbers) for p in params],
                'text': original_text,
            }
        case Record():
            return {k: to_builtin(v, int_numbers=int_numbers) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_builtin(x, int_numbers=int_numbers) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {k: to_builtin(v, int_numbers=int_numbers) for k, v in obj.items()}
    return obj


def xml_name(key: Any) -> str:
    """Maps a header or struct key onto a legal XML element name.

    `item name` becomes `item_name` and `12` becomes `_12`.
    """
    name = _XML_NAME_BAD_RE.sub('_', str(key))
    if not name or not (name[0].isalpha() or name[0] == '_'):
        name = '_' + name
    return name


def _xml_safe(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {xml_name(k): _xml_safe(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_xml_safe(x) for x in obj]
    return obj


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str, *, fmt: str) -> Any:
    """
    Convert config file contents to native Python structures.
    Supported fmt: 'json', 'yaml', 'toml'.
    """
    text = data.decode('utf-8') if isinstance(data, (bytes, bytearray)) else data
    f = fmt.lower()
    if f == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # YAML is a superset; declared JSON is sometimes really YAML
            return yaml.safe_load(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    if f == 'toml':
        return tomllib.loads(text)
    raise ValueError(f"Unsupported config format: {fmt!r}")


def serialize(value: Any,
              *,
              fmt: str,
              pretty: bool = True,
              xml_root: str = "records",
              int_numbers: bool = True) -> str:
    """
    Convert sheet values, records or plain data into a textual representation.
    - fmt: 'json' | 'yaml' | 'xml'
    - For XML, values are wrapped under {xml_root: {'record': value}} when
      they are not already a single-key dict, and every key is passed
      through `xml_name`.
    """
    f = (fmt or '').lower()
    built = to_builtin(value, int_numbers=int_numbers)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    if f == 'xml':
        if isinstance(built, dict) and len(built) == 1:
            root = built
        else:
            root = {xml_root: {'record': built}}
        return xmltodict.unparse(_xml_safe(root), pretty=pretty)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "serialize",
    "to_builtin",
    "xml_name",
]
