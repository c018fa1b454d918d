from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from .aliases import Field
from .config import load_env_file
from .engine import SyncEngine, SyncResult, build_engine
from .errors import ValidationError
from .projection import ALL, FilterState, LinkedInFilter, main_category


def _field_pairs(raw_pairs: Sequence[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for raw in raw_pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"Expected COLUMN=VALUE, got '{raw}'.")
        column, value = raw.split("=", 1)
        fields[column.strip()] = value.strip()
    return fields


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--search", default="", help="Case-insensitive substring over all fields.")
    parser.add_argument("--category", default=ALL, help="Main category ('All' for every category).")
    parser.add_argument("--linkedin", choices=["All", "Yes", "No"], default="All", help="LinkedIn flag filter.")
    parser.add_argument("--start", default="", help="Inclusive start date (YYYY-MM-DD).")
    parser.add_argument("--end", default="", help="Inclusive end date (YYYY-MM-DD).")


def _filter_state(args: argparse.Namespace) -> FilterState:
    return FilterState(
        term=args.search,
        category=args.category,
        linkedin=LinkedInFilter.parse(args.linkedin),
        start=args.start,
        end=args.end,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync and query the article catalog.")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity to stderr.")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("refresh", help="Fetch the catalog from the store.")

    list_parser = commands.add_parser("list", help="Print the filtered catalog.")
    _add_filter_arguments(list_parser)
    list_parser.add_argument("--json", action="store_true", help="Print records as JSON lines.")

    export_parser = commands.add_parser("export", help="Write the filtered catalog as CSV.")
    _add_filter_arguments(export_parser)
    export_parser.add_argument("--output", default=None, help="Output path (default: <catalog>_Filtered_<date>.csv).")

    add_parser = commands.add_parser("add", help="Create an article.")
    add_parser.add_argument(
        "--field",
        action="append",
        default=[],
        metavar="COLUMN=VALUE",
        help="Column value for the new article (repeatable).",
    )

    delete_parser = commands.add_parser("delete", help="Delete an article by identity key.")
    delete_parser.add_argument("key", help="Identity key, e.g. row-12.")

    tags_parser = commands.add_parser("tags", help="Show or edit the hashtag library.")
    tags_parser.add_argument("--add", action="append", default=[], help="Hashtag to add (repeatable).")
    tags_parser.add_argument("--remove", action="append", default=[], help="Hashtag to remove (repeatable).")
    return parser


def _report(result: SyncResult, label: str) -> int:
    if result.ok:
        print(f"[ok] {label}: {result.record_count} articles in catalog.", flush=True)
        return 0
    print(f"[error] {label} failed: {result.error}", flush=True)
    return 1


def _refresh_or_fail(engine: SyncEngine) -> bool:
    result = engine.refresh()
    if not result.ok:
        print(f"[error] refresh failed: {result.error}", flush=True)
    return result.ok


def run_command(args: argparse.Namespace, engine: SyncEngine) -> int:
    command = args.command
    print(f"[start] {command}", flush=True)

    if command == "refresh":
        return _report(engine.refresh(), "refresh")

    if command == "tags":
        if not _refresh_or_fail(engine):
            return 1
        tags = list(engine.snapshot.hashtags)
        try:
            for tag in args.add:
                tags = engine.add_hashtag(tag)
            for tag in args.remove:
                tags = engine.remove_hashtag(tag)
        except ValidationError as exc:
            print(f"[error] {exc}", flush=True)
            return 1
        for tag in tags:
            print(tag)
        print(f"[summary] {json.dumps({'hashtags': len(tags)})}", flush=True)
        return 0

    if not _refresh_or_fail(engine):
        return 1

    if command == "list":
        snapshot = engine.snapshot
        records = engine.project(_filter_state(args))
        for record in records:
            if args.json:
                print(json.dumps(record.to_dict(), ensure_ascii=False, default=str))
            else:
                print(
                    f"{record.identity_key}\t{record.published_date or '-'}\t"
                    f"{main_category(record, snapshot.aliases)}\t{record.linkedin}\t"
                    f"{snapshot.aliases.lookup(record.fields, Field.TITLE)}"
                )
        print(f"[summary] {json.dumps({'matched': len(records), 'total': len(snapshot.records)})}", flush=True)
        return 0

    if command == "export":
        filename, text = engine.export_csv(_filter_state(args))
        target = Path(args.output or filename)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        print(f"[done] wrote {target}", flush=True)
        return 0

    try:
        if command == "add":
            return _report(engine.create(_field_pairs(args.field)), "add")
        if command == "delete":
            return _report(engine.delete(args.key), "delete")
    except (ValidationError, argparse.ArgumentTypeError) as exc:
        print(f"[error] {exc}", flush=True)
        return 1
    raise ValueError(f"Unknown command '{command}'.")


def main(argv: Sequence[str] | None = None, engine: SyncEngine | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    load_env_file()
    engine = engine or build_engine()
    try:
        return run_command(args, engine)
    finally:
        engine.close()


if __name__ == "__main__":
    raise SystemExit(main())
