"""Display formatting helpers."""
from __future__ import annotations

import time

SECONDS_PER_DAY = 86_400


def format_usd(value: float) -> str:
    """$1,234.56 style; negatives as -$1,234.56."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_usd_compact(value: float) -> str:
    """Large USD values with a K/M/B suffix."""
    if value >= 1_000_000_000:
        return f"${value / 1_000_000_000:.2f}B"
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.2f}K"
    return format_usd(value)


def format_apy(apy: float) -> str:
    return f"{apy:.2f}%"


def format_token_amount(amount: int, decimals: int = 18, display_decimals: int = 2) -> str:
    """Smallest-unit integer amount as a human-scale number with separators."""
    whole, remainder = divmod(amount, 10**decimals)
    total = whole + remainder / 10**decimals
    return f"{total:,.{display_decimals}f}"


def truncate_address(address: str) -> str:
    if len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def position_age_days(entry_timestamp: int, now: int | None = None) -> int:
    if now is None:
        now = int(time.time())
    return (now - entry_timestamp) // SECONDS_PER_DAY


def format_position_age(entry_timestamp: int, now: int | None = None) -> str:
    days = position_age_days(entry_timestamp, now)
    if days <= 0:
        return "Today"
    if days == 1:
        return "1 day"
    if days < 30:
        return f"{days} days"
    months = days // 30
    if months == 1:
        return "1 month"
    if months < 12:
        return f"{months} months"
    years = months // 12
    return "1 year" if years == 1 else f"{years} years"
