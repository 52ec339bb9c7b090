from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable, Coroutine
from typing import Any

from catalog_export import CatalogExport
from catalog_export.cli import output as out
from catalog_export.cli.config import (
    Config,
    config_exists,
    config_path_display,
    load_config,
)
from catalog_export.export.exceptions import ExportJobError

DESCRIPTION = """\
catalog-export: export catalog records for a scheduled export job

Reads the job's identifier range in windows, resolves each identifier
to its latest source record (falling back to the central tenant),
synthesizes output for identifiers without one, and writes the
resulting file to the configured storage.

Jobs, profiles and records are read from PostgreSQL."""


# ── Infrastructure helpers ──────────────────────────────────────────


def _build_exporter(cfg: Config) -> CatalogExport:
    return CatalogExport.from_config(cfg.to_dict())


def _require_persistent(cfg: Config, command: str) -> None:
    """Exit with guidance if the store is in-memory."""
    if cfg.uses_postgres:
        return
    out.error(f"'{command}' requires PostgreSQL")
    out.info("The in-memory store holds no export jobs between runs.")
    print()
    out.next_step("export CATALOG_EXPORT_STORE=postgres", "use PostgreSQL")
    print()
    sys.exit(1)


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> None:
    """Display current configuration."""
    cfg = load_config()

    source = config_path_display() if config_exists() else "defaults"
    out.header(f"Configuration ({source})")
    print()

    if cfg.uses_postgres:
        out.kv("Store", f"postgres ({cfg.db_host}:{cfg.db_port}/{cfg.db_name})")
    else:
        out.kv("Store", "memory (in-memory, no persistence)")

    out.kv("Batch size", cfg.batch_size)
    out.kv("Output directory", cfg.output_dir)
    out.kv("Temporary directory", cfg.tmp_dir)
    print()


async def cmd_config_path(args: argparse.Namespace) -> None:
    print(config_path_display())


# ── init-db ─────────────────────────────────────────────────────────


async def cmd_init_db(args: argparse.Namespace) -> None:
    """Create the export tables."""
    cfg = load_config()
    _require_persistent(cfg, "init-db")

    exporter = _build_exporter(cfg)
    try:
        await exporter.init()
    finally:
        await exporter.close()
    out.success(f"Database ready ({cfg.db_host}:{cfg.db_port}/{cfg.db_name})")


# ── run ─────────────────────────────────────────────────────────────


async def cmd_run(args: argparse.Namespace) -> None:
    """Run one scheduled export job."""
    cfg = load_config()
    _require_persistent(cfg, "run")

    exporter = _build_exporter(cfg)
    try:
        await exporter.init()
        try:
            statistics = await exporter.run_export(args.job_id)
        except ExportJobError as exc:
            out.error(str(exc))
            sys.exit(1)
        job = await exporter.get_job(args.job_id)
    finally:
        await exporter.close()

    out.header(f"Export job {args.job_id}")
    print()
    out.kv("Status", out.status(statistics.status.value))
    out.kv("Exported", statistics.exported)
    out.kv("Duplicated", statistics.duplicated)
    out.kv("Failed", statistics.failed)
    out.kv("Not found", len(statistics.not_found_ids))
    if job is not None:
        out.kv("File", exporter.storage.resolve_uri(job.file_location))
    print()
    if statistics.failed:
        out.next_step(f"catalog-export errors {args.job_id}", "see what failed")
        print()


# ── errors ──────────────────────────────────────────────────────────


async def cmd_errors(args: argparse.Namespace) -> None:
    """List the error log of an export job."""
    cfg = load_config()
    _require_persistent(cfg, "errors")

    exporter = _build_exporter(cfg)
    try:
        await exporter.init()
        job = await exporter.get_job(args.job_id)
        entries = await exporter.get_errors(args.job_id)
    finally:
        await exporter.close()

    if job is None:
        out.error(f"Export job {args.job_id} not found")
        sys.exit(1)

    out.header(f"Errors of export job {args.job_id} ({job.status})")
    print()
    if not entries:
        out.success("No errors recorded")
        print()
        return

    shown = entries if args.limit is None else entries[: args.limit]
    for entry in shown:
        stamp = entry.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"  {out.dim(stamp)}  {out.yellow(entry.code)}")
        out.info(f"  {entry.message}")
    if len(shown) < len(entries):
        print()
        out.info(out.dim(f"... {len(entries) - len(shown)} more"))
    print()


# ── Parser ──────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-export",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Setup:\n"
            "  catalog-export init-db                       "
            "Create the export tables\n"
            "\n"
            "Jobs:\n"
            "  catalog-export run JOB_ID                    "
            "Run a scheduled export job\n"
            "  catalog-export errors JOB_ID                 "
            "Show the error log of a job\n"
            "\n"
            "Configuration:\n"
            "  catalog-export config show                   "
            "Show current settings\n"
            "  catalog-export config path                   "
            "Print config file location\n"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress logs (windows, resolution, upload)",
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    sub.add_parser("init-db", help="Create the export tables (requires PostgreSQL)")

    p_run = sub.add_parser("run", help="Run a scheduled export job")
    p_run.add_argument("job_id", help="Identifier of the export job")

    p_errors = sub.add_parser("errors", help="Show the error log of an export job")
    p_errors.add_argument("job_id", help="Identifier of the export job")
    p_errors.add_argument(
        "--limit", type=int, default=None, help="Max error entries to show"
    )

    p_cfg = sub.add_parser("config", help="View settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command", title="config commands")
    cfg_sub.add_parser("show", help="Show current settings")
    cfg_sub.add_parser("path", help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, None]]

_COMMAND_MAP: dict[str, _CommandHandler] = {
    "init-db": cmd_init_db,
    "run": cmd_run,
    "errors": cmd_errors,
}

_CONFIG_MAP: dict[str, _CommandHandler] = {
    "show": cmd_config_show,
    "path": cmd_config_path,
}


def main() -> None:
    import logging

    parser = _build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    if args.command == "config":
        if not args.config_command:
            parser.parse_args(["config", "--help"])
            return
        handler = _CONFIG_MAP.get(args.config_command)
    else:
        handler = _COMMAND_MAP.get(args.command)

    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        print()
