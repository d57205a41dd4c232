"""
Helper functions for formatting data into human-readable strings.
"""

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(byte_count: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '48.2 MB')."""
    if byte_count <= 0:
        return "0 B"
    for unit in SIZE_UNITS[:-1]:
        if byte_count < 1024:
            break
        byte_count /= 1024
    else:
        unit = SIZE_UNITS[-1]
    if unit == "B":
        return f"{int(byte_count)} B"
    return f"{byte_count:.1f} {unit}"


def format_duration(seconds: float) -> str:
    """
    Formats a run duration (e.g., '1h 02m 07s'). Runs shorter than ten
    seconds keep one decimal.
    """
    if seconds < 10:
        return f"{max(seconds, 0):.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"
