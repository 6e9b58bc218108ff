"""
tickerbars command line interface.

Tickers are read newline-delimited from stdin for every job except
``set-exchange``. Logs go to stderr; reports go to stdout.
"""
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from . import __version__
from .config.loader import ConfigLoader
from .engine import TickerBarsEngine, read_tickers
from .errors import SystemFailureError
from .logging import configure_logging, get_logger
from .sync.models import SyncMode, SyncSummary

app = typer.Typer(
    name="tickerbars",
    help="Daily bar sync, indicator recomputation and trend screening",
    add_completion=False,
)

logger = get_logger(__name__)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
    host: Optional[str] = typer.Option(None, "--host", help="TWS/Gateway host"),
    port: Optional[int] = typer.Option(None, "--port", help="TWS/Gateway port"),
    client_id: Optional[int] = typer.Option(None, "--client-id", help="API client id"),
    req_limit: Optional[int] = typer.Option(
        None, "--req-limit", help="Maximum outstanding historical requests"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
):
    """
    Keep a local store of daily bars current and screen it.
    """
    if version:
        typer.echo(f"tickerbars v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    ctx.obj = {
        "config_path": config,
        "overrides": {
            "session": {"host": host, "port": port, "client_id": client_id},
            "sync": {"concurrency_limit": req_limit},
            "storage": {"db_path": str(db) if db is not None else None},
            "logging": {
                "level": log_level.upper() if log_level else None,
                "format_json": True if json_logs else None,
            },
        },
    }


def _build_engine(ctx: typer.Context,
                  extra_overrides: Optional[dict[str, Any]] = None) -> TickerBarsEngine:
    """Load configuration, set up logging and open the store."""
    state = ctx.obj or {"config_path": None, "overrides": {}}
    overrides = dict(state["overrides"])
    if extra_overrides:
        overrides.update(extra_overrides)

    try:
        config = ConfigLoader.create(state["config_path"]).load(overrides)
    except SystemFailureError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    configure_logging(
        level=config.logging.level,
        format_json=config.logging.format_json,
        include_caller=config.logging.include_caller,
    )
    try:
        return TickerBarsEngine(config)
    except SystemFailureError as e:
        _fail(e)


def _read_stdin_tickers() -> list[str]:
    tickers = read_tickers(sys.stdin)
    if not tickers:
        logger.warning("No tickers read from stdin")
    return tickers


def _fail(e: SystemFailureError) -> None:
    logger.error("Job aborted", error=str(e), error_type=type(e).__name__, **e.context)
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1) from e


def _echo_summary(summary: SyncSummary) -> None:
    typer.echo(
        f"dispatched={summary.dispatched} completed={summary.completed} "
        f"failed={summary.failed} skipped={summary.skipped} resynced={summary.resynced} "
        f"discarded={summary.discarded} quotes={summary.quotes_committed}"
    )
    for ticker in summary.failed_tickers:
        typer.echo(f"failed: {ticker}")


@app.command()
def full(ctx: typer.Context):
    """
    Fetch the full history window for tickers on stdin
    """
    engine = _build_engine(ctx)
    try:
        summary = engine.run_sync(_read_stdin_tickers(), SyncMode.FULL)
    except SystemFailureError as e:
        _fail(e)
    _echo_summary(summary)


@app.command()
def incremental(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Request even up-to-date tickers"),
):
    """
    Fetch bars since the last stored bar for tickers on stdin
    """
    engine = _build_engine(ctx)
    try:
        summary = engine.run_sync(_read_stdin_tickers(), SyncMode.INCREMENTAL, force=force)
    except SystemFailureError as e:
        _fail(e)
    _echo_summary(summary)


@app.command("calculate-metrics")
def calculate_metrics(
    ctx: typer.Context,
    workers: int = typer.Option(4, "--workers", "-w", min=1, help="Worker threads"),
):
    """
    Recompute indicator series for tickers on stdin (all stored tickers if none)
    """
    engine = _build_engine(ctx)
    tickers = read_tickers(sys.stdin)
    try:
        results = engine.calculate_metrics(tickers, workers=workers)
    except SystemFailureError as e:
        _fail(e)

    for ticker in sorted(results):
        typer.echo(f"{ticker} {results[ticker]}")


@app.command("trend-candidates")
def trend_candidates(
    ctx: typer.Context,
    loose: bool = typer.Option(False, "--loose", help="Only require EMA8 vs EMA34 ordering"),
    ema_period: Optional[int] = typer.Option(None, "--ema-period", help="EMA rows to check"),
    stoch_k_len: Optional[int] = typer.Option(None, "--stoch-k-len", help="Stochastic %K length"),
    stoch_k_smoothing: Optional[int] = typer.Option(
        None, "--stoch-k-smoothing", help="Stochastic %K smoothing"
    ),
    stoch_d_smoothing: Optional[int] = typer.Option(
        None, "--stoch-d-smoothing", help="Stochastic %D smoothing"
    ),
    stoch_threshold: Optional[float] = typer.Option(
        None, "--stoch-threshold", help="Required stochastic distance from 50"
    ),
    adx_period: Optional[int] = typer.Option(None, "--adx-period", help="ADX period"),
    force: bool = typer.Option(False, "--force", "-f", help="Report every ticker"),
):
    """
    Screen tickers on stdin for trend pullback candidates
    """
    engine = _build_engine(ctx, {
        "screen": {
            "loose": True if loose else None,
            "ema_period": ema_period,
            "stoch_k_len": stoch_k_len,
            "stoch_k_smoothing": stoch_k_smoothing,
            "stoch_d_smoothing": stoch_d_smoothing,
            "stoch_threshold": stoch_threshold,
            "adx_period": adx_period,
            "force": True if force else None,
        }
    })
    try:
        results = engine.trend_candidates(_read_stdin_tickers())
    except SystemFailureError as e:
        _fail(e)

    for result in results:
        typer.echo(result.format_row())


@app.command("set-exchange")
def set_exchange(
    ctx: typer.Context,
    ticker: str = typer.Argument(..., help="Ticker symbol"),
    exchange: str = typer.Argument(..., help="Primary exchange, or NONE to clear"),
):
    """
    Set the primary exchange used when requesting a ticker
    """
    engine = _build_engine(ctx)
    hint = None if exchange.upper() == "NONE" else exchange
    try:
        engine.set_exchange(ticker, hint)
    except SystemFailureError as e:
        _fail(e)
    typer.echo(f"{ticker.upper()} {hint.upper() if hint else '-'}")


if __name__ == "__main__":
    app()
