"""UI layer -- Rich dashboard."""

from .dashboard import (
    ProgressDisplay,
    console,
    format_trend,
    make_listener,
    print_analytics,
    print_header,
    print_history,
    print_notification,
    print_results,
    print_simple,
    sparkline,
)

__all__ = [
    "ProgressDisplay",
    "console",
    "format_trend",
    "make_listener",
    "print_analytics",
    "print_header",
    "print_history",
    "print_notification",
    "print_results",
    "print_simple",
    "sparkline",
]
