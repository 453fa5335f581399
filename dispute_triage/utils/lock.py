from contextlib import contextmanager
import time
import uuid
from typing import Optional
from dispute_triage.settings import settings
from dispute_triage.store.redis_conn import get_redis


class LockUnavailable(RuntimeError):
    pass


_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

_REFRESH_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class ClientLease:
    """Held lock; refresh() pushes the TTL out again while we still own it."""

    def __init__(self, r, key: str, token: str, ttl_ms: int):
        self.r = r
        self.key = key
        self.token = token
        self.ttl_ms = ttl_ms

    def refresh(self) -> bool:
        return bool(self.r.eval(_REFRESH_SCRIPT, 1, self.key, self.token, self.ttl_ms))


@contextmanager
def client_lock(client_id: str, ttl_ms: Optional[int] = None, spins: int = 5):
    """
    Distributed lock so at most one portal session is live per client.
    Yields a ClientLease; long batches must refresh it between disputes.
    """
    r = get_redis()
    key = f"lock:client:{client_id}"
    token = uuid.uuid4().hex
    ttl = int(ttl_ms or settings.CLIENT_LOCK_TTL_MS)
    acquired = r.set(key, token, px=ttl, nx=True)

    try:
        if not acquired:
            for _ in range(spins):
                time.sleep(0.1)
                if r.set(key, token, px=ttl, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise LockUnavailable(f"Client {client_id} already has a live portal session")

        yield ClientLease(r, key, token, ttl)
    finally:
        if acquired:
            # Release only if we own it
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except Exception:
                pass
