"""
Triage counters and run snapshot
--------------------------------
Lightweight Redis counters consumed by /admin/stats. Every writer is
best-effort: a Redis hiccup must never fail a dispute or a login.
"""
from __future__ import annotations
from typing import List
from dispute_triage.store.redis_conn import get_redis
from dispute_triage.observability.logging import log
from dispute_triage.utils.time import now_ms

K_OUTCOME = "metrics:disputes:{status}"       # INCR per terminal status
K_LOGIN = "metrics:logins:{result}"           # INCR success/failure
K_RUN_DUR = "metrics:runs:durations"          # LPUSH ms
K_RUN_LAST = "metrics:runs:last"              # JSON-free hash of last run counts

_MAX_SAMPLES = 200
_STATUSES = ("Closed", "Escalated", "Error")


def _safe(fn):
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            log("metrics_write_failed", metric=fn.__name__, error=str(e)[:200])
            return None
    return wrapper


@_safe
def increment_outcome(status: str) -> None:
    get_redis().incr(K_OUTCOME.format(status=status.lower()), 1)


@_safe
def increment_login(success: bool) -> None:
    get_redis().incr(K_LOGIN.format(result="success" if success else "failure"), 1)


@_safe
def record_run(duration_ms: int, counts: dict) -> None:
    r = get_redis()
    r.lpush(K_RUN_DUR, int(duration_ms))
    r.ltrim(K_RUN_DUR, 0, _MAX_SAMPLES - 1)
    mapping = {k: int(v) for k, v in (counts or {}).items()}
    mapping["at"] = now_ms()
    r.hset(K_RUN_LAST, mapping=mapping)


def _int(v) -> int:
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return 0


def _durations() -> List[int]:
    raw = get_redis().lrange(K_RUN_DUR, 0, _MAX_SAMPLES - 1) or []
    return [_int(x) for x in raw]


def get_run_snapshot() -> dict:
    r = get_redis()
    durations = _durations()
    last = r.hgetall(K_RUN_LAST) or {}
    return {
        "disputes": {s: _int(r.get(K_OUTCOME.format(status=s.lower()))) for s in _STATUSES},
        "logins": {
            "success": _int(r.get(K_LOGIN.format(result="success"))),
            "failure": _int(r.get(K_LOGIN.format(result="failure"))),
        },
        "runs": {
            "samples": len(durations),
            "lastDurationMs": durations[0] if durations else 0,
            "maxDurationMs": max(durations) if durations else 0,
        },
        "lastRun": {k: _int(v) for k, v in last.items()},
    }
