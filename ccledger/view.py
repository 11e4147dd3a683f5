"""Rendering helpers using Rich for ccledger CLI output."""

from collections.abc import Mapping
from datetime import datetime, tzinfo

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ccledger.models import (
    BillingBlock,
    DailyUsage,
    IngestStats,
    MonthlyUsage,
    SessionUsage,
    UsageSummary,
)
from ccledger.pricing import ModelPricing
from ccledger.theme import THEMES, LedgerTheme
from ccledger.utils import local_today, to_local


def get_theme_names() -> tuple[str, ...]:
    """Return available theme identifiers for CLI option hints."""
    return tuple(sorted(THEMES))


def resolve_theme(name: str) -> LedgerTheme:
    """Return the colour palette for the requested theme name."""
    key = name.lower()
    try:
        return THEMES[key]
    except KeyError as exc:
        available = ", ".join(get_theme_names())
        message = f"unknown theme '{name}'. Available themes: {available}"
        raise ValueError(message) from exc


def _new_table(title: str, theme: LedgerTheme) -> Table:
    return Table(
        title=title,
        box=box.SIMPLE_HEAVY,
        show_lines=False,
        header_style=theme.header_style,
        row_styles=theme.row_styles,
        pad_edge=False,
        padding=(0, 1),
    )


def _no_data(console: Console, theme: LedgerTheme, message: str) -> None:
    console.print(Text(message, style=theme.warning_style))


def format_cost(value: float) -> str:
    return f"${value:,.2f}"


def render_summary(
    summary: UsageSummary,
    *,
    console: Console | None = None,
    theme: LedgerTheme,
    tz: tzinfo | None = None,
    stats: IngestStats | None = None,
) -> None:
    """Render the top-line totals for a report."""
    console = console or Console()

    if summary.total_tokens == 0 and summary.total_cost == 0:
        _no_data(console, theme, "No usage found in the given log directories.")
        return

    cost_line = Text("Total cost:", style=theme.accent_style)
    cost_line.append(f" {format_cost(summary.total_cost)}", style=theme.cost_style)
    cost_line.append(
        f" (avg {format_cost(summary.average_daily_cost)}/day)",
        style=theme.info_style,
    )
    console.print(cost_line)

    tokens_line = Text("Total tokens:", style=theme.accent_style)
    tokens_line.append(f" {summary.total_tokens:,}", style=theme.total_style)
    tokens_line.append(
        f" | conversations {summary.total_conversations}", style=theme.count_style
    )
    console.print(tokens_line)

    range_line = Text("Period:", style=theme.accent_style)
    range_line.append(
        f" {format_timestamp(summary.start, tz)} → {format_timestamp(summary.end, tz)}",
        style=theme.label_style,
    )
    console.print(range_line)

    model_line = Text("Top model:", style=theme.accent_style)
    model_line.append(f" {summary.top_model}", style=theme.highlight_label_style)
    console.print(model_line)

    if stats is not None and stats.files_failed:
        console.print(
            Text(
                f"{stats.files_failed} of {stats.files_found} log files could not be read.",
                style=theme.warning_style,
            )
        )


def render_daily(
    daily: list[DailyUsage],
    *,
    console: Console | None = None,
    theme: LedgerTheme,
    detail: bool = False,
    tz: tzinfo | None = None,
    now: datetime | None = None,
) -> None:
    """Render one row per local calendar day, marking today in ``tz``."""
    console = console or Console()
    today = local_today(tz, now).isoformat()
    if not daily:
        _no_data(console, theme, "Daily usage: no data")
        return

    table = _new_table("Daily Usage", theme)
    table.add_column("Date", style=theme.label_style)
    table.add_column("Models", style=theme.highlight_label_style)
    table.add_column("Tokens", justify="right", style=theme.total_style)
    table.add_column("Cost", justify="right", style=theme.cost_style)
    table.add_column("Conversations", justify="right", style=theme.count_style)

    for usage in daily:
        is_today = usage.date == today
        table.add_row(
            f"{usage.date} (today)" if is_today else usage.date,
            ", ".join(model.model for model in usage.iter_models()),
            f"{usage.total_tokens:,}",
            format_cost(usage.total_cost),
            str(usage.conversations),
            style=theme.active_style if is_today else None,
        )
        if detail:
            for model in usage.iter_models():
                table.add_row(
                    "",
                    f"  └ {model.model}",
                    f"{model.input_tokens + model.output_tokens:,}",
                    format_cost(model.cost),
                    f"{model.count} msgs",
                )

    console.print(table)


def render_monthly(
    monthly: Mapping[str, MonthlyUsage],
    *,
    console: Console | None = None,
    theme: LedgerTheme,
) -> None:
    """Render one row per local calendar month."""
    console = console or Console()
    if not monthly:
        _no_data(console, theme, "Monthly usage: no data")
        return

    table = _new_table("Monthly Usage", theme)
    table.add_column("Month", style=theme.label_style)
    table.add_column("Active Days", justify="right", style=theme.count_style)
    table.add_column("Input", justify="right", style=theme.input_style)
    table.add_column("Output", justify="right", style=theme.output_style)
    table.add_column("Tokens", justify="right", style=theme.total_style)
    table.add_column("Cost", justify="right", style=theme.cost_style)
    table.add_column("Conversations", justify="right", style=theme.count_style)

    for month, usage in monthly.items():
        models = usage.model_breakdown.values()
        table.add_row(
            month,
            str(usage.days),
            f"{sum(m.input_tokens for m in models):,}",
            f"{sum(m.output_tokens for m in models):,}",
            f"{usage.total_tokens:,}",
            format_cost(usage.total_cost),
            str(usage.conversations),
        )

    console.print(table)


def render_sessions(
    sessions: list[SessionUsage],
    *,
    console: Console | None = None,
    theme: LedgerTheme,
    top_n: int | None = None,
    tz: tzinfo | None = None,
) -> None:
    """Render conversations, most recent first."""
    console = console or Console()
    rows = sessions[:top_n] if top_n is not None else sessions
    if not rows:
        _no_data(console, theme, "Sessions: no data")
        return

    table = _new_table("Sessions", theme)
    table.add_column("#", justify="right", style=theme.accent_style)
    table.add_column("Conversation", overflow="fold", max_width=40, style=theme.label_style)
    table.add_column("Started", style=theme.label_style)
    table.add_column("Duration", justify="right", style=theme.info_style)
    table.add_column("Messages", justify="right", style=theme.count_style)
    table.add_column("Tokens", justify="right", style=theme.total_style)
    table.add_column("Cost", justify="right", style=theme.cost_style)
    table.add_column("Models", style=theme.highlight_label_style)

    for index, session in enumerate(rows, start=1):
        table.add_row(
            str(index),
            session.title or session.conversation_id,
            format_timestamp(session.start_time, tz),
            format_duration(session.duration_seconds),
            str(session.message_count),
            f"{session.total_tokens:,}",
            format_cost(session.total_cost),
            ", ".join(session.models),
        )

    console.print(table)


def render_blocks(
    blocks: list[BillingBlock],
    *,
    console: Console | None = None,
    theme: LedgerTheme,
    tz: tzinfo | None = None,
    now: datetime | None = None,
    block_hours: float | None = None,
) -> None:
    """Render billing blocks in chronological order, flagging the active one."""
    console = console or Console()
    if not blocks:
        _no_data(console, theme, "Billing blocks: no data")
        return

    title = "Billing Blocks"
    if block_hours is not None:
        title = f"{title} ({block_hours:g}h)"
    table = _new_table(title, theme)
    table.add_column("Start", style=theme.label_style)
    table.add_column("End", style=theme.label_style)
    table.add_column("Status", style=theme.info_style)
    table.add_column("Sessions", justify="right", style=theme.count_style)
    table.add_column("Messages", justify="right", style=theme.count_style)
    table.add_column("Tokens", justify="right", style=theme.total_style)
    table.add_column("Cost", justify="right", style=theme.cost_style)

    for block in blocks:
        if block.is_active(now):
            remaining = format_duration(block.remaining_seconds(now))
            status = Text(f"active ({remaining} left)", style=theme.active_style)
        else:
            status = Text("closed")
        table.add_row(
            format_timestamp(block.start_time, tz),
            format_timestamp(block.end_time, tz),
            status,
            str(len(block.sessions)),
            str(block.message_count),
            f"{block.total_tokens:,}",
            format_cost(block.total_cost),
        )

    console.print(table)


def render_pricing(
    model: str,
    pricing: ModelPricing,
    source: str,
    sample_cost: float,
    *,
    console: Console | None = None,
    theme: LedgerTheme,
) -> None:
    """Render the per-million rates resolved for ``model``."""
    console = console or Console()
    table = _new_table(f"Pricing for {model} ({source})", theme)
    table.add_column("Token class", style=theme.label_style)
    table.add_column("USD / 1M tokens", justify="right", style=theme.cost_style)
    table.add_row("input", f"{pricing.input:.2f}")
    table.add_row("output", f"{pricing.output:.2f}")
    table.add_row("cache creation", f"{pricing.cache_creation:.2f}")
    table.add_row("cache read", f"{pricing.cache_read:.2f}")
    console.print(table)

    sample = Text("1K input + 500 output + 2K cache write + 5K cache read =")
    sample.append(f" ${sample_cost:.4f}", style=theme.cost_style)
    console.print(sample)


def format_timestamp(value: datetime | None, tz: tzinfo | None = None) -> str:
    """Format a timestamp for table display in the report timezone."""
    if value is None:
        return "—"
    dt = to_local(value.replace(microsecond=0), tz)
    return dt.strftime("%Y-%m-%d %H:%M")


def format_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m"
