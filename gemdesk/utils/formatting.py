from datetime import datetime


def format_file_size(size_bytes: int | None) -> str:
    if not size_bytes:
        return ""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def format_timestamp(timestamp: float, now: datetime | None = None) -> str:
    """Time only for today's messages, date and time otherwise."""
    moment = datetime.fromtimestamp(timestamp)
    current = now or datetime.now()
    time_str = moment.strftime("%H:%M")
    if moment.date() == current.date():
        return time_str
    return f"{moment.strftime('%Y-%m-%d')} {time_str}"
