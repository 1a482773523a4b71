"""
CLI entry point for bankquery.

Usage:
  python -m bankquery --help
  python -m bankquery \\
    --data loans.csv checking.csv branches.csv \\
    --prompt "show loans over $5,000 in branch 4"

  # Several prompts against the same data, plan shown, JSON output:
  python -m bankquery --data loans.csv \\
    --prompt "calculate average principal" \\
    --prompt "standard deviation of loan rates" \\
    --show-plan --format json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console(highlight=False)

MAX_ROWS = 50


def _fmt(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:,.2f}"
    return str(value)


def _print_outcome(outcome, show_plan: bool) -> None:
    report = outcome.report
    colour = "green" if report.is_valid else "red"
    console.print(Panel(
        f"[bold]{outcome.prompt}[/bold]\n\n"
        f"Entities:   {', '.join(outcome.plan.target_entities) or '—'}\n"
        f"Conditions: {len(outcome.plan.conditions)}  ({outcome.plan.logical_op.value})\n"
        f"Valid:      [{colour}]{report.is_valid}[/{colour}]   "
        f"Confidence: {report.confidence:.0%}",
        title="bankquery",
        border_style="blue",
    ))
    for issue in report.issues:
        console.print(f"  [yellow]- {issue}[/yellow]")

    if show_plan:
        console.print_json(outcome.plan.model_dump_json())

    if outcome.error:
        console.print(f"\n[red bold]Error:[/red bold] {outcome.error}")
        return

    if outcome.statistic is not None:
        s = outcome.statistic
        console.print(
            f"\n[bold cyan]{s.operation}[/bold cyan] of {s.field}: "
            f"[bold]{_fmt(s.value)}[/bold]  (based on {len(outcome.rows)} row(s))"
        )
        return

    if not outcome.rows:
        console.print("\n[yellow]No matching rows.[/yellow]")
        return

    columns = outcome.columns or [k for k in outcome.rows[0] if not k.startswith("_")]
    sources = ", ".join(s.name for s in outcome.used_sources)
    table = Table(title=f"{len(outcome.rows)} row(s) from {sources}", border_style="blue")
    for col in columns:
        justify = "right" if col in outcome.valuation_fields else "left"
        table.add_column(col, justify=justify)
    if any(r.get("_isAggregated") is not None for r in outcome.rows):
        table.add_column("Sources", style="dim")

    for row in outcome.rows[:MAX_ROWS]:
        cells = [_fmt(row.get(c)) for c in columns]
        if "_sourceIds" in row:
            cells.append(str(len(row["_sourceIds"])) + (" (aggregated)" if row.get("_isAggregated") else ""))
        table.add_row(*cells)

    if outcome.summary:
        table.add_section()
        footer = [
            f"{outcome.summary[c][0]}: {_fmt(outcome.summary[c][1])}" if c in outcome.summary else ""
            for c in columns
        ]
        if len(table.columns) > len(columns):
            footer.append("")
        table.add_row(*footer, style="bold")

    console.print()
    console.print(table)
    if len(outcome.rows) > MAX_ROWS:
        console.print(f"[dim]... ({len(outcome.rows) - MAX_ROWS} more rows)[/dim]")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="python -m bankquery",
        description="Query banking CSV / JSON datasets in plain English",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--data", nargs="+", required=True, help="CSV / JSON files to import")
    parser.add_argument("--prompt", action="append", required=True,
                        help="Prompt to run (repeat for several)")
    parser.add_argument("--show-plan", action="store_true", help="Print the parsed query plan")
    parser.add_argument("--format", default="table", choices=["table", "json"],
                        help="Output format for results")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    from bankquery.config import get_settings

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from bankquery.errors import ImportFailedError
    from bankquery.functions.registry import default_function_registry
    from bankquery.pipeline import QueryPipeline
    from bankquery.store import DataImporter, MemoryStore
    from bankquery.translators.registry import TranslatorRegistry

    store = MemoryStore()
    translators = TranslatorRegistry()
    importer = DataImporter(store, translators, settings=settings)
    try:
        imported = importer.import_files(args.data)
    except ImportFailedError as exc:
        console.print(f"[red bold]Error:[/red bold] {exc}")
        sys.exit(1)

    if args.format == "table":
        for src in imported:
            extra = f"  [dim](translator: {src.translator})[/dim]" if src.translator else ""
            console.print(f"Imported [cyan]{src.name}[/cyan]: {src.row_count} row(s), "
                          f"{len(src.fields)} field(s){extra}")

    pipeline = QueryPipeline(store, translators, default_function_registry(), settings)
    outcomes = [pipeline.run(p) for p in args.prompt]

    if args.format == "json":
        print(json.dumps([o.model_dump(mode="json") for o in outcomes], indent=2, default=str))
    else:
        for outcome in outcomes:
            _print_outcome(outcome, args.show_plan)
        stats = pipeline.log.stats()
        console.print(
            f"\n[bold]Prompts:[/bold] {stats.total}  ·  "
            f"[green]{stats.success_count} ok[/green]  ·  "
            f"[yellow]{stats.warning_count} warning[/yellow]  ·  "
            f"[red]{stats.error_count} error[/red]\n"
        )

    if any(not o.ok for o in outcomes):
        sys.exit(1)


if __name__ == "__main__":
    main()
