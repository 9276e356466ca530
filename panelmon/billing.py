"""Billing cycle countdown for nodes with a recurring renewal period."""

import math

from panelmon.formatting import format_price
from panelmon.models import NodeSummary

DAY_MS = 24 * 3600 * 1000

# Preview choices for the cycle override selector; None keeps the node's own cycle
CYCLE_OPTIONS = {
    "Default": None,
    "Monthly (30 days)": 30,
    "Quarterly (90 days)": 90,
    "Half-year (180 days)": 180,
    "Yearly (365 days)": 365,
}


def effective_cycle_days(cycle_days: int | None, override: int | None = None) -> int | None:
    """Return the override when set, else the node's configured cycle."""
    return override or cycle_days or None


def remaining_days(
    cycle_days: int | None,
    start_date_ms: int | None,
    now_ms: int,
    override: int | None = None,
) -> int | None:
    """Compute whole days left in the current billing cycle.

    Args:
        cycle_days: Configured cycle length in days
        start_date_ms: Cycle anchor in epoch milliseconds
        now_ms: Current wall-clock time in epoch milliseconds
        override: Transient cycle length preview, takes precedence when truthy

    Returns:
        Days remaining (1..cycle length), or None when the cycle or start
        date is missing. A start date in the future counts as zero elapsed,
        and an exact cycle boundary yields a full cycle rather than zero.
    """
    cycle = effective_cycle_days(cycle_days, override)
    if not cycle or not start_date_ms:
        return None

    cycle_ms = cycle * DAY_MS
    elapsed = max(0, now_ms - start_date_ms)
    remainder = cycle_ms - (elapsed % cycle_ms)
    return math.ceil(remainder / DAY_MS)


def format_billing(node: NodeSummary, now_ms: int, override: int | None = None) -> str:
    """Build the billing line, e.g. ``¥12.00 / 30 days · 15 days left``.

    Returns an empty string when the node has neither a price nor a cycle.
    """
    if not (node.price_cents or node.cycle_days):
        return ""

    text = format_price(node.price_cents)
    cycle = effective_cycle_days(node.cycle_days, override)
    if cycle:
        text = f"{text} / {cycle} days" if text else f"{cycle} days"
    days = remaining_days(node.cycle_days, node.start_date_ms, now_ms, override)
    if days is not None:
        text += f" · {days} days left"
    return text
