"""
Helper functions for formatting data into human-readable strings.
"""

from datetime import datetime, timedelta


def format_age(age: timedelta) -> str:
    """
    Formats an age into a short human-readable string (e.g., '3d 4h', '12m').
    Only the two most significant units are shown.
    """
    s = max(int(age.total_seconds()), 0)
    days, remainder = divmod(s, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if not parts:
        parts.append(f"{secs}s")
    return " ".join(parts[:2])


def format_timestamp(value: datetime) -> str:
    """Formats a timestamp the way the system log displays it."""
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def truncate(text: str, width: int = 48) -> str:
    """Shortens `text` to `width` characters, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: width - 1].rstrip() + "…"
