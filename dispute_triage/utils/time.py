import time
from datetime import datetime, timezone

def now_ms() -> int:
    return int(time.time() * 1000)

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def parse_timestamp_ms(ts) -> int:
    """
    Normalize timestamps to epoch milliseconds (int).
    Accepts:
    - int/float: treated as epoch ms (or seconds if suspiciously small)
    - ISO-8601 string or plain date (YYYY-MM-DD), trailing 'Z' allowed
    Fallback: 0, so undated disputes sort first.
    """
    try:
        if ts is None:
            return 0
        if isinstance(ts, (int, float)):
            v = int(ts)
            return v * 1000 if v > 0 and v < 10**12 else v
        if isinstance(ts, str):
            s = ts.strip()
            if not s:
                return 0
            if s.endswith("Z"):
                s = s[:-1] + "+00:00"
            dt = datetime.fromisoformat(s)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return int(dt.timestamp() * 1000)
    except (TypeError, ValueError):
        pass
    return 0

def days_until(ts) -> float:
    """Days from now until ts (negative when already past)."""
    target = parse_timestamp_ms(ts)
    if not target:
        return 0.0
    return (target - now_ms()) / 86_400_000
