from __future__ import annotations

import argparse
import logging
from pathlib import Path

import orjson

from deckfill.core.config import EngineConfig
from deckfill.core.discover import load_document
from deckfill.core.errors import ArchiveOpenError, SerializationError
from deckfill.core.fill import PatchOrchestrator, load_values
from deckfill.core.fill.values import ValuesFileError
from deckfill.core.report import catalogue_to_dict, write_json, write_report
from deckfill.core.utils.schema_validate import (
    SCHEMA_DIR,
    SCHEMA_NAMES,
    schema_path,
    validate_instance,
    validate_json_against_schema,
)


def _project_root() -> Path:
    # .../src/deckfill/apps/cli/main.py -> .../src/deckfill -> .../src -> project root
    return Path(__file__).resolve().parents[4]


def _schema_paths() -> dict[str, Path]:
    return {name: schema_path(name) for name in SCHEMA_NAMES}


def _config(args: argparse.Namespace) -> EngineConfig:
    mb = 1024 * 1024
    archive_mb = getattr(args, "max_archive_mb", None)
    image_mb = getattr(args, "max_image_mb", None)
    return EngineConfig.from_env().with_overrides(
        max_archive_bytes=archive_mb * mb if archive_mb is not None else None,
        max_image_bytes=image_mb * mb if image_mb is not None else None,
    )


def _print_errors(errs: list[str]) -> None:
    for m in errs[:30]:
        print(f"  {m}")
    if len(errs) > 30:
        print(f"  ... ({len(errs)} errors)")


def cmd_paths(_: argparse.Namespace) -> int:
    print(f"project_root: {_project_root()}")
    print(f"schema_dir: {SCHEMA_DIR}")
    for k, v in _schema_paths().items():
        print(f"schema.{k}: {v}")
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Discover placeholders and write catalogue.json."""
    out_path = Path(args.out).resolve()
    config = _config(args)

    if args.input is None:
        if not args.demo:
            print("[NG] no input given (pass a .pptx or --demo)")
            return 2
        document = load_document(None, config=config.with_overrides(seed_demo=True))
    else:
        in_path = Path(args.input).resolve()
        if not in_path.exists():
            print(f"[NG] input not found: {in_path}")
            return 2
        try:
            document = load_document(in_path.read_bytes(), filename=in_path.name, config=config)
        except ArchiveOpenError as e:
            print("[NG] cannot open deck")
            print(f"      detail: {e}")
            return 2

    catalogue = catalogue_to_dict(document)
    errs = validate_instance("catalogue", catalogue)
    if errs:
        print("[NG] generated catalogue does not conform to schema")
        _print_errors(errs)
        return 2

    write_json(catalogue, out_path)
    for index in document.degraded_slides:
        print(f"[WARN] slide {index + 1} is not well-formed XML; scanned as raw text")
    print(f"[OK] {len(document.placeholders)} placeholder(s) on {document.slide_count} slide(s): {out_path}")
    return 0


def cmd_fill(args: argparse.Namespace) -> int:
    """Apply values.json to a deck and write the filled copy."""
    in_path = Path(args.input).resolve()
    values_path = Path(args.values).resolve()
    out_path = Path(args.out).resolve()
    report_path = Path(args.report).resolve() if args.report else out_path.with_suffix(".report.json")
    config = _config(args)

    for p in (in_path, values_path):
        if not p.exists():
            print(f"[NG] input not found: {p}")
            return 2

    try:
        values = load_values(values_path)
    except orjson.JSONDecodeError as e:
        print(f"[NG] values file is not valid JSON: {e}")
        return 2
    except ValuesFileError as e:
        print(f"[NG] values file does not conform to schema: {values_path}")
        _print_errors(e.errors)
        return 2

    original = in_path.read_bytes()
    try:
        document = load_document(original, filename=in_path.name, config=config)
        result = PatchOrchestrator(config).export(original, values, placeholders=document.placeholders)
    except (ArchiveOpenError, SerializationError) as e:
        # Do not leave stale output behind.
        if out_path.exists():
            out_path.unlink()
        print("[NG] fill failed")
        print(f"      detail: {e}")
        return 2

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(result.data)
    report = write_report(
        result, document.placeholders, values, report_path, filename=in_path.name, output=str(out_path)
    )

    summary = report["summary"]
    print(f"[OK] filled: {out_path} ({summary['filled']}/{summary['total']} placeholders, {summary['completion_pct']}%)")
    for s in result.report.skipped:
        print(f"[SKIP] {s.placeholder_id} {s.key}: {s.reason} {s.detail}".rstrip())
    for w in result.report.warnings:
        print(f"[WARN] {w}")
    print(f"[OK] report: {report_path}")
    return 0 if result.report.ok or not args.strict else 1


def cmd_validate(args: argparse.Namespace) -> int:
    sp = schema_path(args.schema) if args.schema in SCHEMA_NAMES else Path(args.schema)
    instance_path = Path(args.instance).resolve()
    errs = validate_json_against_schema(sp, instance_path)
    if not errs:
        print(f"[OK] {instance_path.as_posix()}")
        return 0
    if errs[0].startswith("[ERR]"):
        print(errs[0])
        return 2
    print(f"[NG] {instance_path.as_posix()}")
    _print_errors(errs)
    return 2


def _add_limits(p: argparse.ArgumentParser) -> None:
    p.add_argument("--max-archive-mb", type=int, default=None, help="deck size limit (default: env or 50)")
    p.add_argument("--max-image-mb", type=int, default=None, help="image size limit (default: env or 5)")


def main() -> None:
    parser = argparse.ArgumentParser(prog="deckfill")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_paths = sub.add_parser("paths", help="show important project paths")
    p_paths.set_defaults(func=cmd_paths)

    p_scan = sub.add_parser("scan", help="discover {{placeholders}} and write catalogue.json")
    p_scan.add_argument("input", nargs="?", help="path to input .pptx")
    p_scan.add_argument("--out", required=True, help="output catalogue.json path")
    p_scan.add_argument("--demo", action="store_true", help="emit the demo catalogue when no input is given")
    _add_limits(p_scan)
    p_scan.set_defaults(func=cmd_scan)

    p_fill = sub.add_parser("fill", help="fill placeholders from values.json into a copy of the deck")
    p_fill.add_argument("input", help="path to input .pptx")
    p_fill.add_argument("--values", required=True, help="values.json path")
    p_fill.add_argument("--out", required=True, help="output .pptx path")
    p_fill.add_argument("--report", required=False, help="report.json path (default: <out>.report.json)")
    p_fill.add_argument("--strict", action="store_true", help="exit 1 when any value was skipped")
    _add_limits(p_fill)
    p_fill.set_defaults(func=cmd_fill)

    p_val = sub.add_parser("validate", help="validate a json file against a bundled schema")
    p_val.add_argument("--schema", required=True, help=f"{' | '.join(SCHEMA_NAMES)} or path to *.schema.json")
    p_val.add_argument("--instance", required=True, help="json file to validate")
    p_val.set_defaults(func=cmd_validate)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
