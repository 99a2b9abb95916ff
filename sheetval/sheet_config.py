"""Parse options and how they are loaded from mappings and config files."""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

DEFAULT_MAX_DEPTH = 64


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        s = value.strip().lower()
        if s in ('true', 'yes', 'on', '1'):
            return True
        if s in ('false', 'no', 'off', '0', ''):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


@dataclass(frozen=True)
class ParseOptions:
    """Knobs for one parse pass."""
    max_depth: int = DEFAULT_MAX_DEPTH
    skip_blank_rows: bool = True
    trim_header: bool = True

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]] = None) -> 'ParseOptions':
        """Builds options from a dict, accepting 'max-depth' or 'max_depth' style keys."""
        cfg = {str(k).replace('-', '_'): v for k, v in dict(config or {}).items()}
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(cfg) - known)
        if unknown:
            raise ValueError(f"Unknown parse option(s): {', '.join(unknown)}")
        kwargs = {}
        if 'max_depth' in cfg:
            kwargs['max_depth'] = int(cfg.pop('max_depth'))
        for name in ('skip_blank_rows', 'trim_header'):
            if name in cfg:
                kwargs[name] = _to_bool(cfg.pop(name))
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'ParseOptions':
        """Loads options from a YAML, JSON or TOML file.

        A top-level 'sheetval' table is used when present, so the options can
        live inside a larger project config.
        """
        from sheetval.sheet_serialize import deserialize

        p = Path(path)
        ext = p.suffix.lower()
        fmt = {'.json': 'json', '.yaml': 'yaml', '.yml': 'yaml', '.toml': 'toml'}.get(ext)
        if fmt is None:
            raise ValueError(f"Unsupported config file type: {p.name}")
        data = deserialize(p.read_bytes(), fmt=fmt)
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Config file {p.name} must contain a mapping")
        section = data.get('sheetval', data)
        return cls.from_mapping(section)

    def merged(self, **overrides: Any) -> 'ParseOptions':
        """Returns a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
