"""CLI module for catalog inspection and drift detection.

Usage:
    DB_PROFILE=local db-drift tables
    db-drift --profile local tables --documents
    db-drift --profile local functions
    db-drift --profile local indexes --table app.mt_doc_order
    db-drift --profile local foreign-keys
    db-drift --profile local function-def app.mt_upsert_order --args "doc jsonb"
    db-drift --profile local check --expected expected.json --type Order

Commands:
    profiles      - List available profiles
    tables        - List managed (or document) tables
    functions     - List managed functions
    indexes       - List managed indexes
    foreign-keys  - List managed foreign keys
    function-def  - Show a function definition and its DROP statements
    check         - Compare the expected schema with the database

Exit codes: 0 success / in sync, 1 drift or not found, 2 catalog error.
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.table import Table

from db_drift.config.loader import load_db_config
from db_drift.errors import AmbiguousOverload, CatalogError
from db_drift.factory import Catalog, ProfileNotFoundError, get_catalog
from db_drift.schema.drift import DriftDetector
from db_drift.schema.expected import load_expected_schema
from db_drift.schema.models import DifferenceKind, DriftReport, NotFound, ObjectName

console = Console()

EXIT_OK = 0
EXIT_DRIFT = 1
EXIT_ERROR = 2

_KIND_STYLES = {
    DifferenceKind.MISSING: "bold red",
    DifferenceKind.ALTERED: "bold yellow",
    DifferenceKind.EXTRA: "yellow",
    DifferenceKind.IN_SYNC: "green",
}


def _load_catalog(args: argparse.Namespace) -> Catalog | None:
    """Resolve the profile, printing a message and returning None on failure."""
    try:
        return get_catalog(
            profile_name=args.profile,
            env_prefix=args.env_prefix,
            config_path=args.config,
        )
    except (ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return None


def _print_report(report: DriftReport) -> None:
    table = Table(title="Schema Differences", show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Type", style="dim")
    table.add_column("Entity", style="cyan")
    table.add_column("Detail")

    for diff in report.differences:
        style = _KIND_STYLES[diff.kind]
        detail = "\n".join(c.describe() for c in diff.changes) or diff.detail
        if diff.primary_key_changed:
            detail += (
                f"\nprimary key: ({', '.join(diff.actual_primary_key or [])})"
                f" -> ({', '.join(diff.expected_primary_key or [])})"
            )
        table.add_row(f"[{style}]{diff.kind.value}[/{style}]", diff.entity_type, diff.entity, detail)

    console.print(table)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_tables(args: argparse.Namespace, catalog: Catalog) -> int:
    if args.documents:
        tables = await catalog.reader.list_document_tables()
    else:
        tables = await catalog.reader.list_managed_schema_tables()

    table = Table(title="Document Tables" if args.documents else "Managed Tables")
    table.add_column("Table", style="cyan")
    table.add_column("Columns", justify="right")
    for t in tables:
        table.add_row(t.name.qualified_name, str(len(t.columns)))
    console.print(table)
    return EXIT_OK


async def _async_functions(args: argparse.Namespace, catalog: Catalog) -> int:
    functions = await catalog.reader.list_managed_functions()
    if not functions:
        console.print("[dim]No managed functions.[/dim]")
    for name in functions:
        console.print(f"  {name.qualified_name}")
    return EXIT_OK


async def _async_indexes(args: argparse.Namespace, catalog: Catalog) -> int:
    table_name = ObjectName.parse(args.table) if args.table else None
    indexes = await catalog.reader.list_indexes(table_name)

    table = Table(title="Managed Indexes")
    table.add_column("Table", style="dim")
    table.add_column("Index", style="cyan")
    table.add_column("Method")
    table.add_column("Keys")
    table.add_column("Flags")
    for idx in indexes:
        flags = [
            label
            for label, on in (
                ("primary", idx.is_primary),
                ("unique", idx.is_unique),
                ("functional", idx.is_functional),
                ("partial", idx.is_partial),
            )
            if on
        ]
        table.add_row(
            idx.table.qualified_name,
            idx.name,
            idx.index_type,
            ", ".join(idx.key_columns),
            ", ".join(flags),
        )
    console.print(table)
    return EXIT_OK


async def _async_foreign_keys(args: argparse.Namespace, catalog: Catalog) -> int:
    keys = await catalog.reader.list_foreign_keys()

    table = Table(title="Managed Foreign Keys")
    table.add_column("Constraint", style="cyan")
    table.add_column("Table")
    for fk in keys:
        table.add_row(fk.name, fk.table.qualified_name)
    console.print(table)
    return EXIT_OK


async def _async_function_def(args: argparse.Namespace, catalog: Catalog) -> int:
    name = ObjectName.parse(args.name)
    try:
        body = await catalog.reader.get_function_definition(name, arguments=args.args)
    except AmbiguousOverload as e:
        console.print(f"[bold yellow]![/bold yellow] {e}")
        return EXIT_DRIFT

    if isinstance(body, NotFound):
        console.print(f"[yellow]Function {name.qualified_name} not found[/yellow]")
        return EXIT_DRIFT

    console.print(f"[bold]{body.name.qualified_name}({body.arguments})[/bold]")
    console.print(body.definition, markup=False, highlight=False)
    console.print("\n[bold]Drop statements:[/bold]")
    for drop in body.drop_statements:
        console.print(f"  {drop}", markup=False)
    return EXIT_OK


async def _async_check(args: argparse.Namespace, catalog: Catalog) -> int:
    try:
        source = load_expected_schema(args.expected)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return EXIT_ERROR

    types = args.types or source.type_identifiers
    unknown = [t for t in types if t not in source.type_identifiers]
    if unknown:
        console.print(f"[red]Unknown types: {', '.join(unknown)}[/red]")
        return EXIT_ERROR

    console.print(
        f"Checking [bold]{len(types)}[/bold] type(s) against profile "
        f"[bold cyan]{catalog.profile_name}[/bold cyan]",
        style="dim",
    )

    detector = DriftDetector(catalog.reader, catalog.materializer, source)
    table_report = await detector.check_types(types)
    function_report = await detector.check_functions(source.functions)
    report = DriftReport(differences=table_report.differences + function_report.differences)

    _print_report(report)
    console.print()
    if report.valid:
        console.print("[bold green]v[/bold green] Schema is in sync")
        if report.has_drift:
            console.print(
                f"  Extra objects (warning): [yellow]{report.count(DifferenceKind.EXTRA)}[/yellow]"
            )
        return EXIT_OK

    console.print(f"[bold red]x[/bold red] Schema has drifted: {report.error_count} error(s)")
    return EXIT_DRIFT


_COMMANDS = {
    "tables": _async_tables,
    "functions": _async_functions,
    "indexes": _async_indexes,
    "foreign-keys": _async_foreign_keys,
    "function-def": _async_function_def,
    "check": _async_check,
}


def cmd_catalog(args: argparse.Namespace) -> int:
    """Run a catalog command.

    Wraps the async implementation with ``asyncio.run()`` and turns
    catalog errors and malformed object names into exit code 2.
    """
    catalog = _load_catalog(args)
    if catalog is None:
        return EXIT_ERROR

    try:
        return asyncio.run(_COMMANDS[args.command](args, catalog))
    except CatalogError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        return EXIT_ERROR
    except ValueError as e:
        # Malformed object names from the command line
        console.print(f"[bold red]x[/bold red] {e}")
        return EXIT_ERROR


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml."""
    try:
        config = load_db_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return EXIT_ERROR

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile", style="cyan")
    table.add_column("Description")
    for name, profile in config.profiles.items():
        table.add_row(name, profile.description)
    console.print(table)

    console.print(
        f"\n[dim]Managed schemas:[/dim] {', '.join(config.catalog.schemas)}  "
        f"[dim]table prefix:[/dim] {config.catalog.table_prefix}"
    )
    return EXIT_OK


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-drift",
        description="PostgreSQL catalog introspection and schema drift detection",
    )
    parser.add_argument("--config", default=None, help="Path to db.toml (default: ./db.toml)")
    parser.add_argument("--profile", default=None, help="Profile name from db.toml")
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_tables = subparsers.add_parser("tables", help="List managed tables")
    p_tables.add_argument(
        "--documents", action="store_true", help="Only document tables"
    )
    p_tables.set_defaults(func=cmd_catalog)

    p_functions = subparsers.add_parser("functions", help="List managed functions")
    p_functions.set_defaults(func=cmd_catalog)

    p_indexes = subparsers.add_parser("indexes", help="List managed indexes")
    p_indexes.add_argument("--table", default=None, help="Only indexes on schema.table")
    p_indexes.set_defaults(func=cmd_catalog)

    p_fks = subparsers.add_parser("foreign-keys", help="List managed foreign keys")
    p_fks.set_defaults(func=cmd_catalog)

    p_def = subparsers.add_parser(
        "function-def", help="Show a function definition and its DROP statements"
    )
    p_def.add_argument("name", help="Function name (schema.name)")
    p_def.add_argument(
        "--args", default=None, help='Argument signature selecting an overload, e.g. "doc jsonb"'
    )
    p_def.set_defaults(func=cmd_catalog)

    p_check = subparsers.add_parser("check", help="Compare expected schema with the database")
    p_check.add_argument("--expected", required=True, help="Path to expected schema JSON")
    p_check.add_argument(
        "--type",
        dest="types",
        action="append",
        default=None,
        help="Document type to check (repeatable, default: all)",
    )
    p_check.set_defaults(func=cmd_catalog)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for drift or errors).
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
