from dataclasses import dataclass


@dataclass(frozen=True)
class LedgerTheme:
    """Colour palette applied across CLI tables and messages."""

    header_style: str
    label_style: str
    highlight_label_style: str
    total_style: str
    cost_style: str
    input_style: str
    output_style: str
    count_style: str
    info_style: str
    warning_style: str
    accent_style: str
    active_style: str
    row_styles: tuple[str, ...] | None = None


THEMES: dict[str, LedgerTheme] = {
    "default": LedgerTheme(
        header_style="bold cyan",
        label_style="white",
        highlight_label_style="bold white",
        total_style="green",
        cost_style="bold green",
        input_style="white",
        output_style="white",
        count_style="yellow",
        info_style="bold white",
        warning_style="yellow",
        accent_style="bold",
        active_style="bold green",
        row_styles=None,
    ),
    "mono": LedgerTheme(
        header_style="bold white",
        label_style="white",
        highlight_label_style="bold white",
        total_style="white",
        cost_style="bold white",
        input_style="white",
        output_style="white",
        count_style="white",
        info_style="bold white",
        warning_style="white",
        accent_style="bold white",
        active_style="reverse",
        row_styles=None,
    ),
    "dracura": LedgerTheme(
        header_style="bold #BD93F9",
        label_style="#F8F8F2",
        highlight_label_style="bold #8BE9FD",
        total_style="#50FA7B",
        cost_style="bold #50FA7B",
        input_style="#F1FA8C",
        output_style="#8BE9FD",
        count_style="#FFB86C",
        info_style="#6272A4",
        warning_style="#FF5555",
        accent_style="bold #FF79C6",
        active_style="bold #FF79C6",
        row_styles=None,
    ),
    "ayu": LedgerTheme(
        header_style="bold #FFCC66",
        label_style="#CCCAC2",
        highlight_label_style="bold #73D0FF",
        total_style="#87D96C",
        cost_style="bold #87D96C",
        input_style="#FFAD66",
        output_style="#5CCFE6",
        count_style="#FFD173",
        info_style="#707A8C",
        warning_style="#FF6666",
        accent_style="bold #FFCC66",
        active_style="bold #FFCC66",
        row_styles=None,
    ),
}


def _get_theme_names() -> tuple[str, ...]:
    """Return available theme identifiers for CLI option hints."""
    return tuple(sorted(THEMES))


AVAILABLE_THEMES = _get_theme_names()
