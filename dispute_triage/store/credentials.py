from typing import List

from dispute_triage.core.errors import AuthError
from dispute_triage.observability.logging import log
from dispute_triage.store.models import Credential
from dispute_triage.store.redis_conn import get_redis
from dispute_triage.utils.time import days_until, parse_timestamp_ms, now_ms

PREFIX = "credentials:"
INDEX = "credentials:clients"


def _key(client_id: str) -> str:
    return f"{PREFIX}{client_id}"


def _is_active(data: dict) -> bool:
    if str(data.get("active", "true")).lower() != "true":
        return False
    expires = parse_timestamp_ms(data.get("expires_at"))
    return not expires or expires > now_ms()


def get_credential(client_id: str) -> Credential:
    """Active portal credential for a client; raises AuthError when none."""
    r = get_redis()
    data = r.hgetall(_key(client_id)) or {}
    if not data.get("username") or not data.get("secret") or not _is_active(data):
        log("credential_missing", clientId=client_id)
        raise AuthError(f"No active credentials found for client: {client_id}", reason="no_credentials")
    return Credential(
        client_id=client_id,
        username=data["username"],
        secret=data["secret"],
        expires_at=data.get("expires_at") or None,
    )


def put_credential(cred: Credential, active: bool = True) -> None:
    r = get_redis()
    r.hset(_key(cred.client_id), mapping={
        "username": cred.username,
        "secret": cred.secret,
        "expires_at": cred.expires_at or "",
        "active": "true" if active else "false",
    })
    r.sadd(INDEX, cred.client_id)


def list_expiring(days_threshold: int = 7) -> List[dict]:
    """Active credentials whose secret expires within the threshold."""
    r = get_redis()
    out = []
    for client_id in sorted(r.smembers(INDEX) or []):
        data = r.hgetall(_key(client_id)) or {}
        if not data.get("expires_at") or not _is_active(data):
            continue
        left = days_until(data["expires_at"])
        if left <= days_threshold:
            out.append({
                "clientId": client_id,
                "username": data.get("username", ""),
                "expiresAt": data["expires_at"],
                "daysLeft": int(left) + (1 if left > int(left) else 0),
            })
    return out
