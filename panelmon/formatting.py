"""Display formatting for telemetry values (pure functions)."""

from datetime import datetime

from panelmon.models import LatencyStat

UNAVAILABLE = "-"
_TRAFFIC_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_uptime(seconds: int | None) -> str:
    """Format an uptime in seconds as a coarse duration.

    Examples:
        >>> format_uptime(90061)
        '1d 1h'
        >>> format_uptime(3900)
        '1h 5m'
        >>> format_uptime(0)
        '-'
    """
    if not seconds:
        return UNAVAILABLE
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_traffic(num_bytes: int | None) -> str:
    """Format a byte count with binary (1024) units and two decimals.

    Examples:
        >>> format_traffic(1536)
        '1.50 KB'
        >>> format_traffic(0)
        '0 B'
    """
    if not num_bytes or num_bytes < 0:
        return "0 B"
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(_TRAFFIC_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{value:.2f} {_TRAFFIC_UNITS[index]}"


def format_percent(value: float | None) -> str:
    if value is None:
        return UNAVAILABLE
    return f"{value:.1f}%"


def format_sla(sla: float | None) -> str:
    """Format an SLA fraction as a percentage with two decimals."""
    if sla is None:
        return UNAVAILABLE
    return f"{sla * 100:.2f}%"


def format_price(price_cents: int | None) -> str:
    if not price_cents:
        return ""
    return f"¥{price_cents / 100:.2f}"


def format_ms(value: float | None) -> str:
    if value is None:
        return UNAVAILABLE
    if float(value).is_integer():
        return f"{int(value)} ms"
    return f"{value:.1f} ms"


def format_latency_stat(stat: LatencyStat | None) -> str:
    """Format a latency aggregate as ``<latest> ms (<target>) · avg <avg> ms``."""
    if stat is None:
        return UNAVAILABLE
    text = format_ms(stat.latest)
    if stat.latest is not None and stat.latest_target_name:
        text += f" ({stat.latest_target_name})"
    if stat.avg is not None:
        text += f" · avg {format_ms(stat.avg)}"
    return text


def format_timestamp(ms: int | None) -> str:
    """Format epoch milliseconds as local time."""
    if ms is None:
        return UNAVAILABLE
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def format_duration(seconds: int | None) -> str:
    """Format a disconnect duration; unresolved durations read as ongoing."""
    if seconds is None:
        return "ongoing"
    return f"{seconds}s"
