"""
Redis-backed dispute datastore.

Layout:
  dispute:<id>                         JSON document (Dispute)
  dispute:ctrl:<client>:<control>      id lookup for ingestion upserts
  disputes:pending                     ZSET id -> response-due epoch ms
  disputes:pending:<client>            same, per client
  audit:<dispute id>                   LIST of JSON audit records (append-only)
  audit:system                         audit records with no dispute (logins)
"""
import inspect
import json
import uuid
from typing import List, Optional

from dispute_triage.observability.logging import log
from dispute_triage.store.models import AuditRecord, CLOSED, Dispute, ESCALATED, PENDING, STATUSES
from dispute_triage.store.redis_conn import get_redis
from dispute_triage.utils.time import now_iso, parse_timestamp_ms

PREFIX = "dispute:"
PENDING_INDEX = "disputes:pending"
SYSTEM_AUDIT = "audit:system"


def _key(dispute_id: str) -> str:
    return f"{PREFIX}{dispute_id}"


def _ctrl_key(client_id: str, control_number: str) -> str:
    return f"{PREFIX}ctrl:{client_id}:{control_number}"


def _pending_key(client_id: Optional[str] = None) -> str:
    return f"{PENDING_INDEX}:{client_id}" if client_id else PENDING_INDEX


def _audit_key(dispute_id: Optional[str]) -> str:
    return f"audit:{dispute_id}" if dispute_id else SYSTEM_AUDIT


def _filter_dispute_kwargs(data: dict) -> dict:
    """
    Drop unknown fields so Dispute(**kwargs) never explodes
    """
    allowed = set(inspect.signature(Dispute).parameters.keys())
    return {k: v for k, v in data.items() if k in allowed}


def _decode(raw: str) -> Dispute:
    data = _filter_dispute_kwargs(json.loads(raw))
    if data.get("status") not in STATUSES:
        data["status"] = PENDING
    return Dispute(**data)


def _save(r, dispute: Dispute) -> None:
    pipe = r.pipeline()
    pipe.set(_key(dispute.id), json.dumps(dispute.to_dict()))
    pipe.set(_ctrl_key(dispute.client_id, dispute.control_number), dispute.id)
    score = parse_timestamp_ms(dispute.response_due_date)
    if dispute.status == PENDING:
        pipe.zadd(PENDING_INDEX, {dispute.id: score})
        pipe.zadd(_pending_key(dispute.client_id), {dispute.id: score})
    else:
        pipe.zrem(PENDING_INDEX, dispute.id)
        pipe.zrem(_pending_key(dispute.client_id), dispute.id)
    pipe.execute()


def load_dispute(dispute_id: str) -> Optional[Dispute]:
    r = get_redis()
    raw = r.get(_key(dispute_id))
    if not raw:
        return None
    return _decode(raw)


def list_pending(client_id: Optional[str] = None) -> List[Dispute]:
    """Pending disputes, optionally for one client, by response-due date ascending."""
    r = get_redis()
    ids = r.zrange(_pending_key(client_id), 0, -1) or []
    out: List[Dispute] = []
    for dispute_id in ids:
        raw = r.get(_key(dispute_id))
        if not raw:
            continue
        d = _decode(raw)
        # Index can briefly lag a status change made elsewhere
        if d.status == PENDING:
            out.append(d)
    return out


def upsert_dispute(dispute: Dispute) -> Dispute:
    """
    Ingestion entry point, keyed by (client, control number).
    A re-ingested case refreshes report columns but keeps its triage outcome.
    """
    r = get_redis()
    existing_id = r.get(_ctrl_key(dispute.client_id, dispute.control_number))
    existing = load_dispute(existing_id) if existing_id else None

    if existing is not None:
        existing.first_name = dispute.first_name or existing.first_name
        existing.last_name = dispute.last_name or existing.last_name
        existing.response_due_date = dispute.response_due_date or existing.response_due_date
        existing.date_received = dispute.date_received or existing.date_received
        existing.date_furnisher = dispute.date_furnisher or existing.date_furnisher
        existing.ticket_id = dispute.ticket_id or existing.ticket_id
        dispute = existing
    elif not dispute.id:
        dispute.id = uuid.uuid4().hex

    _validate(dispute)
    dispute.updated_at = now_iso()
    _save(r, dispute)
    return dispute


def _validate(dispute: Dispute) -> None:
    if dispute.status not in STATUSES:
        raise ValueError(f"Unknown dispute status: {dispute.status}")
    # verdict flag is set exactly for the two verdict statuses
    if (dispute.is_frivolous is not None) != (dispute.status in (CLOSED, ESCALATED)):
        raise ValueError(f"is_frivolous={dispute.is_frivolous!r} does not fit status {dispute.status}")


def update_dispute(dispute: Dispute) -> Dispute:
    _validate(dispute)
    r = get_redis()
    dispute.updated_at = now_iso()
    _save(r, dispute)
    return dispute


def append_audit(record: AuditRecord) -> None:
    """Best-effort append; failures are logged and never raised."""
    try:
        if not record.created_at:
            record.created_at = now_iso()
        r = get_redis()
        r.rpush(_audit_key(record.dispute_id), json.dumps({
            "dispute_id": record.dispute_id,
            "action_type": record.action_type,
            "action_details": record.action_details,
            "created_at": record.created_at,
        }, default=str))
    except Exception as e:
        log(
            "audit_append_failed",
            disputeId=record.dispute_id,
            actionType=record.action_type,
            errorType=type(e).__name__,
            error=str(e)[:300],
        )


def list_audit(dispute_id: Optional[str]) -> List[AuditRecord]:
    r = get_redis()
    out: List[AuditRecord] = []
    for raw in r.lrange(_audit_key(dispute_id), 0, -1) or []:
        try:
            data = json.loads(raw)
        except ValueError:
            continue
        out.append(AuditRecord(
            dispute_id=data.get("dispute_id"),
            action_type=data.get("action_type", ""),
            action_details=data.get("action_details") or {},
            created_at=data.get("created_at"),
        ))
    return out
