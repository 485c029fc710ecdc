from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import ParserSettings
from .errors import FixedWidthError
from .exporters import JsonlWriter, export_to_excel, load_jsonl
from .layout import layout_to_payload, load_layout
from .parsing_engine import parse, parse_in_batches

LOGGER = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _parse_command(args: argparse.Namespace) -> int:
    layout = load_layout(Path(args.layout))
    output_jsonl = Path(args.output_jsonl)

    with JsonlWriter(output_jsonl) as writer:
        if args.batch_size is not None:
            parse_in_batches(
                args.input,
                layout,
                writer,
                batch_size=args.batch_size,
                force_utf8_encoding=args.force_utf8,
                encoding=args.input_encoding,
            )
        else:
            parse(
                args.input,
                layout,
                writer,
                force_utf8_encoding=args.force_utf8,
                encoding=args.input_encoding,
            )

    LOGGER.info("Parsed %s records into %s", writer.count, output_jsonl)
    return 0


def _excel_command(args: argparse.Namespace) -> int:
    records = load_jsonl(Path(args.input_jsonl))
    layout = load_layout(Path(args.layout)) if args.layout else None
    export_to_excel(records=records, output_path=Path(args.output_xlsx), layout=layout)
    return 0


def _check_layout_command(args: argparse.Namespace) -> int:
    layout = load_layout(Path(args.layout))
    sys.stdout.write(json.dumps(layout_to_payload(layout), ensure_ascii=False, indent=2))
    sys.stdout.write("\n")
    LOGGER.info("Layout %s is valid (%s fields)", args.layout, len(layout.fields))
    return 0


def build_parser(settings: ParserSettings | None = None) -> argparse.ArgumentParser:
    settings = settings or ParserSettings.from_env()

    parser = argparse.ArgumentParser(
        prog="fixed-width-parser",
        description="Extract records from fixed-width text files.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse a fixed-width file into JSONL.")
    parse_cmd.add_argument("--layout", required=True, help="Layout JSON path.")
    parse_cmd.add_argument("--input", required=True, help="Fixed-width input file path.")
    parse_cmd.add_argument("--output-jsonl", required=True, help="Output JSONL path.")
    parse_cmd.add_argument(
        "--batch-size",
        type=int,
        nargs="?",
        const=settings.batch_size,
        default=None,
        help=(
            "Parse in batches of N raw lines. The first line is treated as a header "
            f"and skipped. Without N, uses {settings.batch_size}."
        ),
    )
    parse_cmd.add_argument(
        "--no-force-utf8",
        dest="force_utf8",
        action="store_false",
        help="Decode with --input-encoding instead of repairing lines as UTF-8.",
    )
    parse_cmd.add_argument(
        "--input-encoding",
        default=settings.input_encoding,
        help="Input encoding used with --no-force-utf8.",
    )
    parse_cmd.set_defaults(handler=_parse_command, force_utf8=settings.force_utf8_encoding)

    excel = subparsers.add_parser("excel", help="Export parsed JSONL to Excel.")
    excel.add_argument("--input-jsonl", required=True, help="Parsed JSONL input.")
    excel.add_argument("--output-xlsx", required=True, help="Excel output path.")
    excel.add_argument("--layout", default=None, help="Optional layout JSON path to order columns.")
    excel.set_defaults(handler=_excel_command)

    check = subparsers.add_parser("check-layout", help="Validate a layout JSON file.")
    check.add_argument("--layout", required=True, help="Layout JSON path.")
    check.set_defaults(handler=_check_layout_command)

    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
    except FixedWidthError as error:
        sys.stderr.write(f"error: {error}\n")
        return 2

    args = parser.parse_args(argv)
    _setup_logging(verbose=args.verbose)
    try:
        return args.handler(args)
    except FixedWidthError as error:
        sys.stderr.write(f"error: {error}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
