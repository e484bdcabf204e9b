#!/usr/bin/env python3
"""Generate source files for a .zap project from a template set."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from zapgen.config import settings
from zapgen.db import db_api, query_package
from zapgen.generator.generation_engine import generate_and_write_files, load_templates
from zapgen.importexport.importer import import_data_from_file
from zapgen.zcl.zcl_loader import load_zcl

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate source files for a .zap project from a template set."
    )
    parser.add_argument(
        "--zcl",
        default=settings.ZCL_METAFILE or None,
        help="ZCL metadata file (JSON).",
    )
    parser.add_argument(
        "--templates",
        default=settings.TEMPLATE_METAFILE or None,
        help="Template set metafile (gen-templates.json).",
    )
    parser.add_argument("--zap", required=True, help="Project file to generate for.")
    parser.add_argument(
        "--output",
        default=settings.OUTPUT_DIR,
        help="Directory generated files are written to.",
    )
    parser.add_argument(
        "--db",
        default=":memory:",
        help="SQLite database file (default: in-memory).",
    )
    parser.add_argument(
        "--disable-deprecation-warnings",
        action="store_true",
        default=settings.DISABLE_DEPRECATION_WARNINGS,
        help="Don't warn when templates use deprecated helper names.",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    if not args.zcl or not args.templates:
        logger.error("--zcl and --templates are required (or set ZCL_METAFILE / TEMPLATE_METAFILE)")
        return 1

    db = await db_api.init_database_and_load_schema(args.db)
    try:
        zcl = await load_zcl(db, args.zcl)
        templates = await load_templates(db, args.templates)
        imported = await import_data_from_file(db, args.zap, zcl_package_id=zcl.package_id)
        await query_package.insert_session_package(db, imported.session_id, templates.package_id)

        result = await generate_and_write_files(
            db,
            imported.session_id,
            templates.package_id,
            args.output,
            options={"disable_deprecation_warnings": args.disable_deprecation_warnings},
        )
    finally:
        await db_api.close_database(db)

    for output, error in sorted(result.errors.items()):
        print(f"[generate] {output}: {error.message}", file=sys.stderr)

    written = len(result.content) - len(result.errors)
    print(f"[generate] {written} file(s) written to {args.output}")
    return 1 if result.has_errors else 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL), format=settings.LOG_FORMAT)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("[generate] interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
