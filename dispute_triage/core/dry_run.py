"""
Dry-run wiring: the real pipeline with in-memory collaborators.

No browser, Redis, tracker or message channel is touched. Case details
come from fixtures, cycled per located case, so a run exercises the same
categorize/act/propagate logic a live run does.
"""
from contextlib import contextmanager
from dataclasses import replace
from itertools import cycle
from typing import Dict, List, Optional

import dispute_triage.portal.actions as actions
from dispute_triage.core.errors import AuthError
from dispute_triage.core.pipeline import TriagePipeline
from dispute_triage.core.propagator import OutcomePropagator
from dispute_triage.portal.locator import CaseHandle, NotFound
from dispute_triage.portal.session import AUTHENTICATED, PortalSession
from dispute_triage.store.models import AuditRecord, CaseDetail, Credential, Dispute, PENDING
from dispute_triage.utils.time import now_iso, parse_timestamp_ms

SAMPLE_DISPUTES = [
    Dispute(
        id="dry-dispute-1",
        client_id="TestClient",
        control_number="TEST1234567",
        first_name="John",
        last_name="Doe",
        response_due_date="2023-04-15",
        ticket_id="dry-task-1",
    ),
    Dispute(
        id="dry-dispute-2",
        client_id="TestClient",
        control_number="TEST7654321",
        first_name="Jane",
        last_name="Smith",
        response_due_date="2023-04-16",
        ticket_id="dry-task-2",
    ),
]

SAMPLE_CASE_DETAILS = [
    CaseDetail(
        disputeCode1="The consumer disputes this account information: 103 - Account belongs to someone else",
        disputeCode2="",
        images="--",
        fcraRelevantInfo="--",
    ),
    CaseDetail(
        disputeCode1="The consumer disputes this account information",
        disputeCode2="",
        images="--",
        fcraRelevantInfo="--",
    ),
]


class InMemoryDisputeStore:
    def __init__(self, disputes: Optional[List[Dispute]] = None):
        self.disputes: Dict[str, Dispute] = {d.id: replace(d) for d in (disputes or [])}
        self.audit: List[AuditRecord] = []

    def list_pending(self, client_id: Optional[str] = None) -> List[Dispute]:
        rows = [d for d in self.disputes.values()
                if d.status == PENDING and (client_id is None or d.client_id == client_id)]
        return sorted(rows, key=lambda d: parse_timestamp_ms(d.response_due_date))

    def update_dispute(self, dispute: Dispute) -> Dispute:
        dispute.updated_at = now_iso()
        self.disputes[dispute.id] = dispute
        return dispute

    def append_audit(self, record: AuditRecord) -> None:
        if not record.created_at:
            record.created_at = now_iso()
        self.audit.append(record)


class RecordingTracker:
    def __init__(self):
        self.comments: List[tuple] = []
        self.statuses: List[tuple] = []

    def find_by_control_number(self, control_number: str) -> Optional[str]:
        return None

    def comment(self, ticket_id: str, text: str) -> None:
        self.comments.append((ticket_id, text))

    def set_status(self, ticket_id: str, label: str) -> None:
        self.statuses.append((ticket_id, label))


class StaticCredentials:
    def __init__(self, missing: Optional[List[str]] = None):
        self.missing = set(missing or [])

    def get_credential(self, client_id: str) -> Credential:
        if client_id in self.missing:
            raise AuthError(f"No active credentials found for client: {client_id}", reason="no_credentials")
        return Credential(client_id=client_id, username=f"{client_id}-dry-run", secret="dry-run")


class DryRunSessionManager:
    def __init__(self):
        self.opened: List[PortalSession] = []

    def login(self, credential: Credential) -> PortalSession:
        session = PortalSession(client_id=credential.client_id, page=None, state=AUTHENTICATED)
        self.opened.append(session)
        return session

    def close(self, session: PortalSession) -> None:
        if session is not None:
            session.closed = True


class FixturePortal:
    """Locator/extractor/executor double backed by case-detail fixtures."""

    def __init__(self, case_details: Optional[List[CaseDetail]] = None, missing: Optional[List[str]] = None):
        self._details = cycle(case_details or SAMPLE_CASE_DETAILS)
        self.missing = set(missing or [])

    def find_case(self, session: PortalSession, control_number: str):
        if control_number in self.missing:
            return NotFound(control_number)
        return CaseHandle(session=session, control_number=control_number)

    def extract(self, handle: CaseHandle) -> CaseDetail:
        return next(self._details)

    def close_frivolous(self, handle: CaseHandle) -> dict:
        return {
            "action": "close",
            "responseCode": actions.RESPONSE_CODE_LABEL,
            "continueClicks": 0,
            "recoveryAttempts": 0,
            "closedAt": now_iso(),
            "simulated": True,
        }

    def escalate(self, categorization) -> dict:
        return actions.escalate(categorization)


@contextmanager
def _no_lock(client_id: str):
    yield


def build_dry_run_pipeline(
    disputes: Optional[List[Dispute]] = None,
    case_details: Optional[List[CaseDetail]] = None,
    missing_cases: Optional[List[str]] = None,
    cancel=None,
):
    """Returns (pipeline, store, tracker) so callers can inspect what was written."""
    store = InMemoryDisputeStore(SAMPLE_DISPUTES if disputes is None else disputes)
    tracker = RecordingTracker()
    portal = FixturePortal(case_details, missing=missing_cases)
    pipeline = TriagePipeline(
        store=store,
        credentials=StaticCredentials(),
        session_manager=DryRunSessionManager(),
        locator=portal.find_case,
        extractor=portal.extract,
        executor=portal,
        propagator=OutcomePropagator(store=store, tracker=tracker),
        lock=_no_lock,
        cancel=cancel,
        dispute_delay_ms=0,
    )
    return pipeline, store, tracker
