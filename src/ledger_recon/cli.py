"""
Command-line interface for the bank / ledger reconciliation tool.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.engine import ReconciliationEngine
from .models.transaction import ReconciliationResult, TransactionSource
from .parsers.csv_parser import CSVTransactionParser
from .reports.csv_export import CSVExporter
from .reports.excel_generator import ExcelReportGenerator
from .utils.exceptions import ConfigurationError
from .utils.logging_config import setup_logging

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank statement to ledger reconciliation tool."""
    pass


@main.command()
@click.argument("bank_file", type=click.Path(exists=True, path_type=Path))
@click.argument("ledger_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option(
    "-m",
    "--mode",
    default=None,
    help="Matching mode: 'accuracy' (wider windows) or 'speed' (narrower)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option("--csv", "csv_output", type=click.Path(path_type=Path), help="Also write a CSV export")
@click.option(
    "--amount-tolerance",
    type=str,
    default=None,
    help="Override amount tolerance (e.g. 0.01)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Reconcile and show summary without writing reports"
)
def reconcile(
    bank_file: Path,
    ledger_file: Path,
    config: Optional[Path],
    mode: Optional[str],
    output: Optional[Path],
    csv_output: Optional[Path],
    amount_tolerance: Optional[str],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile a bank statement with a ledger export.

    BANK_FILE: Path to the bank statement CSV
    LEDGER_FILE: Path to the ledger CSV export
    """
    try:
        recon_config = load_config(config)
        log_level = logging.DEBUG if verbose else recon_config.logging.level
        log_file = Path(recon_config.logging.file) if recon_config.logging.file else None
        setup_logging(log_level, log_file=log_file, log_format=recon_config.logging.format)

        if amount_tolerance is not None:
            recon_config = _apply_amount_tolerance_override(recon_config, amount_tolerance)

        parser = CSVTransactionParser(recon_config)
        bank_transactions = parser.parse_file(bank_file, TransactionSource.BANK)
        ledger_transactions = parser.parse_file(ledger_file, TransactionSource.LEDGER)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
        ) as progress:
            task = progress.add_task("Reconciling...", total=100)
            engine = ReconciliationEngine(recon_config)
            result = engine.reconcile(
                bank_transactions,
                ledger_transactions,
                mode=mode,
                progress=lambda percent: progress.update(task, completed=percent),
            )

        _display_summary(result)

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        if output is None:
            output = Path(
                recon_config.output.report_filename_template.format(
                    date=datetime.now().strftime("%Y%m%d_%H%M%S")
                )
            )
        report_path = ExcelReportGenerator(recon_config).generate_report(result, output)
        console.print(f"\n[green]Report generated: {report_path}[/green]")

        if csv_output is not None:
            csv_path = CSVExporter().export(result, csv_output)
            console.print(f"[green]CSV export generated: {csv_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command("parse")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-s",
    "--source",
    type=click.Choice([s.value for s in TransactionSource]),
    default=TransactionSource.BANK.value,
    show_default=True,
    help="Which side the file belongs to",
)
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def parse(file: Path, source: str, config: Optional[Path]):
    """
    Parse a transaction CSV and display what was detected.

    FILE: Path to the CSV file
    """
    try:
        recon_config = load_config(config)
        parser = CSVTransactionParser(recon_config)
        transactions = parser.parse_file(file, TransactionSource(source))
    except Exception as e:
        console.print(f"[red]Error parsing file: {e}[/red]")
        sys.exit(1)

    table = Table(title=f"{source.capitalize()} Transactions: {file.name}")
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Type")
    table.add_column("Description")

    for txn in transactions[:20]:  # Show first 20
        table.add_row(
            txn.id,
            str(txn.date),
            f"{txn.amount:,.2f}",
            txn.type.value,
            (
                txn.description[:40] + "..."
                if len(txn.description) > 40
                else txn.description
            ),
        )

    console.print(table)

    if len(transactions) > 20:
        console.print(f"\n... and {len(transactions) - 20} more transactions")

    console.print(f"\nTotal transactions: {len(transactions)}")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_summary(result: ReconciliationResult) -> None:
    """Display reconciliation summary in console."""
    stats = result.stats
    table = Table(title=f"Reconciliation Summary ({result.mode} mode)")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Bank Transactions", str(stats.total_bank))
    table.add_row("Total Ledger Transactions", str(stats.total_ledger))
    table.add_row("Match Groups", str(len(result.matches)))
    table.add_row("Matched Bank Items", str(stats.matched_bank_count))
    table.add_row("Matched Ledger Items", str(stats.matched_ledger_count))
    table.add_row("Unmatched Bank", str(stats.unmatched_bank_count))
    table.add_row("Unmatched Ledger", str(stats.unmatched_ledger_count))
    for kind, count in stats.matches_by_kind.items():
        table.add_row(f"  {kind}", str(count))
    table.add_row("Match Rate", f"{stats.match_rate:.1f}%")
    table.add_row("Processing Time", f"{result.processing_time_seconds:.2f}s")

    console.print(table)


def _apply_amount_tolerance_override(config: ReconConfig, value: str) -> ReconConfig:
    """Return a copy of the configuration with a different amount tolerance."""
    try:
        tolerance = Decimal(value)
    except InvalidOperation as e:
        raise ConfigurationError(f"Invalid amount tolerance: {value}") from e
    if not tolerance.is_finite() or tolerance <= 0:
        raise ConfigurationError(f"Amount tolerance must be positive: {value}")

    matching = config.matching.model_copy(update={"amount_tolerance": tolerance})
    return config.model_copy(update={"matching": matching})


if __name__ == "__main__":
    main()
