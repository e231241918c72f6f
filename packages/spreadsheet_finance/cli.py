"""CLI for the ``spreadsheet_finance`` package.

Two commands are exposed through a Typer console interface:

- ``parse DATA_TYPE --csv-path PATH``: parse one exported sheet and print the
  result as JSON.
- ``holdings --investments PATH --trades PATH``: reconcile the holdings sheet
  with the trade log, value every position and print a table.

The root callback loads ``.env`` from the working directory (without
overriding variables already set) and configures package logging. Command
logic lives in the ``cmd_*`` functions, which return a process exit code.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .api import DataType, parse_raw_data
from .config import load_settings
from .logging_setup import configure_logging

# ---- Small module-level helpers used by CLI commands --------------------------


def _read_text(path: Path) -> str | None:
    """Read a sheet export; print an error and return ``None`` on failure."""

    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {path}", file=sys.stderr)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Unexpected failure reading '{path}': {e}", file=sys.stderr)
    return None


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    return result


def _parse_number_map(raw: str | None, option: str) -> dict[str, float] | None:
    """Parse a ``{"KEY": number}`` JSON option; ``None`` with an error on failure."""

    if not raw:
        return {}
    try:
        loaded = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"Error: {option} is not valid JSON: {e}", file=sys.stderr)
        return None
    if not isinstance(loaded, dict):
        print(f"Error: {option} must be a JSON object", file=sys.stderr)
        return None
    try:
        return {str(k).upper().strip(): float(v) for k, v in loaded.items()}
    except (TypeError, ValueError) as e:
        print(f"Error: {option} values must be numbers: {e}", file=sys.stderr)
        return None


# ---- Command handlers ---------------------------------------------------------


def cmd_parse(csv_path: str, data_type: DataType) -> int:
    """Parse ``csv_path`` as ``data_type`` and print JSON to stdout."""

    text = _read_text(Path(csv_path))
    if text is None:
        return 1
    result = parse_raw_data(text, data_type)
    print(json.dumps(_to_jsonable(result), indent=2))
    return 0


def cmd_holdings(
    investments_path: str,
    trades_path: str,
    *,
    prices: str | None = None,
    rates: str | None = None,
) -> int:
    """Reconcile and value holdings, printing a table and the base-currency total."""

    from .portfolio import reconcile_investments
    from .valuation import value_holdings

    investments_text = _read_text(Path(investments_path))
    if investments_text is None:
        return 1
    trades_text = _read_text(Path(trades_path))
    if trades_text is None:
        return 1

    live_prices = _parse_number_map(prices, "--prices")
    rate_map = _parse_number_map(rates, "--rates")
    if live_prices is None or rate_map is None:
        return 1

    settings = load_settings()
    investments = parse_raw_data(investments_text, DataType.INVESTMENTS, settings=settings)
    trades = parse_raw_data(trades_text, DataType.TRADES, settings=settings)
    positions = reconcile_investments(investments, trades)
    valued = value_holdings(
        positions, trades, live_prices, rate_map, base_currency=settings.base_currency
    )

    table = Table(title="Holdings")
    table.add_column("Ticker")
    table.add_column("Account")
    table.add_column("Quantity", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Live")
    table.add_column("Native", justify="right")
    table.add_column(f"Value ({settings.base_currency})", justify="right")
    total = 0.0
    for holding in valued:
        v = holding.valuation
        total += v.base_value
        table.add_row(
            holding.ticker,
            holding.position.account_name,
            f"{holding.position.quantity:,.4f}",
            f"{v.price:,.2f}",
            "yes" if v.is_live else "no",
            f"{v.native_value:,.2f} {v.currency}",
            f"{v.base_value:,.2f}",
        )

    console = Console()
    console.print(table)
    console.print(f"Total ({settings.base_currency}): {total:,.2f}")
    return 0


# ---- Typer-based console interface --------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse personal-finance spreadsheet exports and value reconciled holdings. "
        "Loads settings from a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,  # required
    "--csv-path",
    help="Path to a CSV export of the sheet",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
    readable=True,
)
INVESTMENTS_OPTION: OptionInfo = typer.Option(
    ..., "--investments", help="CSV export of the holdings sheet", dir_okay=False
)
TRADES_OPTION: OptionInfo = typer.Option(
    ..., "--trades", help="CSV export of the trade log", dir_okay=False
)
PRICES_OPTION: OptionInfo = typer.Option(
    "--prices", help='Live quotes as JSON, e.g. \'{"AAPL": 190.5}\'.'
)
RATES_OPTION: OptionInfo = typer.Option(
    "--rates", help='Exchange rates to the base currency as JSON, e.g. \'{"USD": 1.36}\'.'
)
LOG_LEVEL_OPTION: OptionInfo = typer.Option(
    "--log-level",
    help="Log level (DEBUG, INFO, ...). Defaults to SPREADSHEET_FINANCE_LOG_LEVEL or INFO.",
)


@app.command("parse")
def parse_cmd(
    data_type: Annotated[DataType, typer.Argument(help="Sheet type to parse")],
    csv_path: Annotated[Path, CSV_PATH_OPTION],
) -> None:
    """Parse one sheet export and print it as JSON."""

    code = cmd_parse(str(csv_path), data_type)
    if code:
        raise typer.Exit(code)


@app.command("holdings")
def holdings_cmd(
    investments: Annotated[Path, INVESTMENTS_OPTION],
    trades: Annotated[Path, TRADES_OPTION],
    prices: Annotated[str | None, PRICES_OPTION] = None,
    rates: Annotated[str | None, RATES_OPTION] = None,
) -> None:
    """Reconcile holdings with trades and print valued positions."""

    code = cmd_holdings(str(investments), str(trades), prices=prices, rates=rates)
    if code:
        raise typer.Exit(code)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: Annotated[str | None, LOG_LEVEL_OPTION] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
