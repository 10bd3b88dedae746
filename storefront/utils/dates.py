# storefront/utils/dates.py
from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ymd_utc(dt=None):
    return (dt or utcnow()).strftime("%Y-%m-%d")


def parse_iso8601(s):
    if not s:
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        s = str(s).strip()
        # support trailing 'Z' (UTC)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None  # let validation catch it
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)  # store naive UTC
    return dt