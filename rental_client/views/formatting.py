from __future__ import annotations

from datetime import datetime, timezone, tzinfo


def relative_time_label(timestamp: datetime | None, now: datetime | None = None) -> str:
    if timestamp is None:
        return ""
    now = now or datetime.now(timezone.utc)
    minutes = int((now - timestamp).total_seconds() // 60)
    hours = minutes // 60

    if hours < 1:
        return "Just now" if minutes < 1 else f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    return "Yesterday" if days == 1 else f"{days}d ago"


def clock_label(timestamp: datetime, tz: tzinfo | None = None) -> str:
    """12-hour clock without a leading zero, e.g. ``3:07 PM``.

    The time is shown in ``tz``, or in the machine's local zone when omitted.
    """
    local = timestamp.astimezone(tz)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def truncate_preview(text: str, max_chars: int) -> str:
    cleaned = " ".join(text.split())
    if len(cleaned) <= max_chars:
        return cleaned
    return f"{cleaned[: max_chars - 3]}..."


def unread_badge(count: int, cap: int) -> str:
    if count <= 0:
        return ""
    return f"{cap}+" if count > cap else str(count)


def initial(name: str | None, fallback: str) -> str:
    return (name or "").strip()[:1].upper() or fallback
