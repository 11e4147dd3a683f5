from dataclasses import asdict
from json import dumps
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.text import Text

from ccledger.cli.options import (
    ACTIVE_OPTION,
    BLOCK_HOURS_OPTION,
    DETAIL_OPTION,
    JSON_OPTION,
    OFFLINE_OPTION,
    PATH_OPTION,
    SINCE_OPTION,
    THEME_OPTION,
    TIMEZONE_OPTION,
    TOP_OPTION,
    UNTIL_OPTION,
    VERSION_OPTION,
)
from ccledger.config import Settings
from ccledger.logger import logger
from ccledger.models import TokenUsage, UsageReport
from ccledger.service import build_calculator, load_report
from ccledger.theme import LedgerTheme
from ccledger.utils import parse_date_bound
from ccledger.view import (
    render_blocks,
    render_daily,
    render_monthly,
    render_pricing,
    render_sessions,
    render_summary,
    resolve_theme,
)

logger = logger.getChild("cli")

console = Console()

app = typer.Typer(
    help="Account for Claude Code token usage and cost.",
    add_completion=False,
    no_args_is_help=True,
)

SAMPLE_USAGE = TokenUsage(input=1000, output=500, cache_creation=2000, cache_read=5000)


def _fail(message: str) -> typer.Exit:
    console.print(Text(message, style="bold red"))
    return typer.Exit(2)


def _describe(exc: ValueError) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(error["msg"] for error in exc.errors())
    return str(exc)


def _build_settings(
    *,
    paths: list[Path] | None,
    timezone: str | None,
    offline: bool | None,
    since: str | None = None,
    until: str | None = None,
    block_hours: float | None = None,
) -> Settings:
    """Merge CLI options over ``CCLEDGER_*`` environment settings."""
    try:
        settings = Settings.from_env(
            paths=paths or None,
            timezone=timezone,
            offline=offline,
            block_hours=block_hours,
        )
        bounds: dict[str, Any] = {}
        if since:
            bounds["since"] = parse_date_bound(since, settings.tz, end_of_day=False)
        if until:
            bounds["until"] = parse_date_bound(until, settings.tz, end_of_day=True)
    except ValueError as exc:
        raise _fail(_describe(exc)) from exc
    return settings.model_copy(update=bounds)


def _theme(name: str) -> LedgerTheme:
    try:
        return resolve_theme(name)
    except ValueError as exc:
        raise _fail(str(exc)) from exc


def _load(settings: Settings) -> UsageReport:
    logger.debug(f"  roots={[str(root) for root in settings.log_roots()]}")
    logger.debug(f"  timezone={settings.timezone} offline={settings.offline}")
    report = load_report(settings)
    if report.stats.files_found == 0:
        logger.info("no log files found")
    elif report.is_empty:
        logger.info(f"no usage records in {report.stats.files_found} log files")
    return report


def _print_json(payload: object) -> None:
    print(dumps(payload, indent=2, ensure_ascii=False))


@app.callback()
def main(
    *,
    version: bool = VERSION_OPTION,
) -> None:
    """Account for Claude Code token usage and cost."""


@app.command("daily", help="Show usage per local calendar day")
def daily(
    *,
    paths: list[Path] | None = PATH_OPTION,
    timezone: str | None = TIMEZONE_OPTION,
    offline: bool | None = OFFLINE_OPTION,
    since: str | None = SINCE_OPTION,
    until: str | None = UNTIL_OPTION,
    detail: bool = DETAIL_OPTION,
    theme: str = THEME_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    logger.debug(f"daily: detail={detail} since={since} until={until}")
    settings = _build_settings(
        paths=paths, timezone=timezone, offline=offline, since=since, until=until
    )
    palette = _theme(theme)
    report = _load(settings)
    if as_json:
        _print_json(report.to_dict()["daily"])
        return
    render_daily(
        report.daily_usage(),
        console=console,
        theme=palette,
        detail=detail,
        tz=settings.tz,
    )


@app.command("monthly", help="Show usage per local calendar month")
def monthly(
    *,
    paths: list[Path] | None = PATH_OPTION,
    timezone: str | None = TIMEZONE_OPTION,
    offline: bool | None = OFFLINE_OPTION,
    since: str | None = SINCE_OPTION,
    until: str | None = UNTIL_OPTION,
    theme: str = THEME_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    logger.debug(f"monthly: since={since} until={until}")
    settings = _build_settings(
        paths=paths, timezone=timezone, offline=offline, since=since, until=until
    )
    palette = _theme(theme)
    report = _load(settings)
    if as_json:
        _print_json(report.to_dict()["monthly"])
        return
    render_monthly(report.monthly_usage(), console=console, theme=palette)


@app.command("session", help="Show usage per conversation, most recent first")
def session(
    *,
    paths: list[Path] | None = PATH_OPTION,
    timezone: str | None = TIMEZONE_OPTION,
    offline: bool | None = OFFLINE_OPTION,
    since: str | None = SINCE_OPTION,
    until: str | None = UNTIL_OPTION,
    top: int | None = TOP_OPTION,
    theme: str = THEME_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    logger.debug(f"session: top={top} since={since} until={until}")
    settings = _build_settings(
        paths=paths, timezone=timezone, offline=offline, since=since, until=until
    )
    palette = _theme(theme)
    report = _load(settings)
    if as_json:
        sessions = report.to_dict()["sessions"]
        _print_json(sessions[:top] if top is not None else sessions)
        return
    render_sessions(
        report.sessions(), console=console, theme=palette, top_n=top, tz=settings.tz
    )


@app.command("blocks", help="Show usage per billing block")
def blocks(
    *,
    paths: list[Path] | None = PATH_OPTION,
    timezone: str | None = TIMEZONE_OPTION,
    offline: bool | None = OFFLINE_OPTION,
    since: str | None = SINCE_OPTION,
    until: str | None = UNTIL_OPTION,
    block_hours: float | None = BLOCK_HOURS_OPTION,
    active: bool = ACTIVE_OPTION,
    theme: str = THEME_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    logger.debug(f"blocks: block_hours={block_hours} active={active}")
    settings = _build_settings(
        paths=paths,
        timezone=timezone,
        offline=offline,
        since=since,
        until=until,
        block_hours=block_hours,
    )
    palette = _theme(theme)
    report = _load(settings)
    if as_json:
        payload = report.to_dict()["blocks"]
        if active:
            payload = [block for block in payload if block["is_active"]]
        _print_json(payload)
        return
    if active:
        current = report.active_block()
        selected = [current] if current is not None else []
    else:
        selected = report.blocks()
    render_blocks(
        selected,
        console=console,
        theme=palette,
        tz=settings.tz,
        block_hours=report.block_hours,
    )


@app.command("summary", help="Show top-line totals across all usage")
def summary(
    *,
    paths: list[Path] | None = PATH_OPTION,
    timezone: str | None = TIMEZONE_OPTION,
    offline: bool | None = OFFLINE_OPTION,
    since: str | None = SINCE_OPTION,
    until: str | None = UNTIL_OPTION,
    theme: str = THEME_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    logger.debug(f"summary: since={since} until={until}")
    settings = _build_settings(
        paths=paths, timezone=timezone, offline=offline, since=since, until=until
    )
    palette = _theme(theme)
    report = _load(settings)
    if as_json:
        _print_json(report.to_dict())
        return
    render_summary(
        report.summary,
        console=console,
        theme=palette,
        tz=settings.tz,
        stats=report.stats,
    )


@app.command("pricing", help="Show the per-million token rates used for a model")
def pricing(
    model: Annotated[str, typer.Argument(help="Model name as it appears in logs.")],
    *,
    offline: bool | None = OFFLINE_OPTION,
    theme: str = THEME_OPTION,
    as_json: bool = JSON_OPTION,
) -> None:
    logger.debug(f"pricing: model={model} offline={offline}")
    settings = _build_settings(paths=None, timezone=None, offline=offline)
    palette = _theme(theme)
    calculator = build_calculator(settings)
    rates, source = calculator.lookup(model)
    sample_cost = rates.cost(SAMPLE_USAGE)
    if as_json:
        _print_json(
            {
                "model": model,
                "source": source,
                **asdict(rates),
                "sample_cost": sample_cost,
            }
        )
        return
    render_pricing(model, rates, source, sample_cost, console=console, theme=palette)


def run():
    app()
