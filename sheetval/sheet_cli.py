import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from sheetval.sheet_config import ParseOptions
from sheetval.sheet_runtime import SheetLoader
from sheetval.sheet_serialize import serialize

EXIT_FAULT = 1
EXIT_DIAGNOSTICS = 2


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="sheetval",
        description="Parse a published-sheet CSV into typed records.",
    )
    ap.add_argument("file", help="CSV file to load, or '-' for stdin")
    ap.add_argument("--format", choices=("json", "yaml", "xml"), default="json")
    ap.add_argument("--config", help="YAML/JSON/TOML file with parse options")
    ap.add_argument("--max-depth", type=int, default=None)
    ap.add_argument("--strict", action="store_true",
                    help="exit with status 2 when any diagnostic was reported")
    ap.add_argument("-v", "--verbose", action="count", default=0)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        options = ParseOptions.from_file(args.config) if args.config else ParseOptions()
        options = options.merged(max_depth=args.max_depth)
        source = _read_source(args.file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAULT

    result = SheetLoader(options).load(source)
    for diag in result.diagnostics:
        print(diag.format(), file=sys.stderr)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return EXIT_FAULT

    try:
        out = serialize(result.records, fmt=args.format)
    except ValueError as e:
        print(f"Error: cannot write {args.format}: {e}", file=sys.stderr)
        return EXIT_FAULT
    print(out)
    if args.strict and result.diagnostics:
        return EXIT_DIAGNOSTICS
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
