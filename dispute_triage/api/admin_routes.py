from fastapi import APIRouter, Depends, HTTPException

import dispute_triage.observability.metrics as metrics
from dispute_triage.api.auth import require_admin
from dispute_triage.api.schemas import AuditEntry, AuditTrail, DisputeView
from dispute_triage.store.dispute_repo import list_audit, load_dispute

router = APIRouter(prefix="/admin", tags=["admin"])


def _load_or_404(dispute_id: str):
    d = load_dispute(dispute_id)
    if d is None:
        raise HTTPException(status_code=404, detail="Dispute not found")
    return d


@router.get("/disputes/{dispute_id}", response_model=DisputeView)
def get_dispute(dispute_id: str, _=Depends(require_admin)):
    """Current triage state of one dispute. Consumer names are not exposed."""
    d = _load_or_404(dispute_id)
    return DisputeView(
        id=d.id,
        clientId=d.client_id,
        controlNumber=d.control_number,
        status=d.status,
        isFrivolous=d.is_frivolous,
        responseDueDate=d.response_due_date,
        ticketId=d.ticket_id,
        updatedAt=d.updated_at,
        resolutionDetails=d.resolution_details or {},
    )


@router.get("/disputes/{dispute_id}/audit", response_model=AuditTrail)
def get_dispute_audit(dispute_id: str, _=Depends(require_admin)):
    """Ordered audit trail for the dispute."""
    _load_or_404(dispute_id)
    entries = [
        AuditEntry(actionType=a.action_type, actionDetails=a.action_details or {}, createdAt=a.created_at)
        for a in list_audit(dispute_id)
    ]
    return AuditTrail(disputeId=dispute_id, entries=entries)


@router.get("/stats")
def get_stats(_=Depends(require_admin)):
    """
    Observability snapshot backed by Redis counters.
    """
    return metrics.get_run_snapshot()
