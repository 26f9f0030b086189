"""
Timestamp Module - Best-effort timestamp extraction from log lines

Supported formats (tried in order):
- ISO 8601 / RFC 3339: "2025-09-12T10:28:19.304534+0200", "2024-01-15 10:30:45Z"
- Common datetime: "2024-01-15 10:30:45" with optional fraction
- Syslog: "Nov 04 13:04:44" (current year assumed)

Naive values are taken as UTC; every result is timezone-aware UTC.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

ISO8601_RE = re.compile(
    r'(?P<date>\d{4}-\d{2}-\d{2})[T ](?P<time>\d{2}:\d{2}:\d{2})'
    r'(?:\.(?P<fraction>\d{1,9}))?'
    r'(?P<tz>Z|[+-]\d{2}:?\d{2})?'
)

SYSLOG_RE = re.compile(
    r'(?P<month>Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+'
    r'(?P<day>\d{1,2})\s+(?P<time>\d{2}:\d{2}:\d{2})'
)


def _parse_offset(tz: Optional[str]) -> timezone:
    if not tz or tz == 'Z':
        return timezone.utc
    sign = -1 if tz[0] == '-' else 1
    digits = tz[1:].replace(':', '')
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    # Raises ValueError for offsets of 24h or more
    return timezone(sign * offset)


def _try_iso8601(line: str) -> Optional[datetime]:
    match = ISO8601_RE.search(line)
    if not match:
        return None

    try:
        dt = datetime.strptime(f"{match['date']} {match['time']}", '%Y-%m-%d %H:%M:%S')
    except ValueError:
        return None

    if match['fraction']:
        # Python keeps microseconds only; nanosecond digits are truncated
        dt = dt.replace(microsecond=int(match['fraction'][:6].ljust(6, '0')))

    try:
        return dt.replace(tzinfo=_parse_offset(match['tz'])).astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def _try_syslog(line: str, year: Optional[int] = None) -> Optional[datetime]:
    match = SYSLOG_RE.search(line)
    if not match:
        return None

    year = year or datetime.now(timezone.utc).year
    try:
        dt = datetime.strptime(
            f"{year} {match['month']} {int(match['day'])} {match['time']}",
            '%Y %b %d %H:%M:%S'
        )
    except ValueError:
        return None
    return dt.replace(tzinfo=timezone.utc)


def parse_timestamp(line: str) -> Optional[datetime]:
    """
    Extract the first recognizable timestamp from a log line

    Args:
        line: Raw log line

    Returns:
        Aware UTC datetime, or None when no supported format is found
    """
    return _try_iso8601(line) or _try_syslog(line)
