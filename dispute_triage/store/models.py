from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

# Dispute lifecycle (status is always exactly one of these)
PENDING = "Pending"
ESCALATED = "Escalated"
CLOSED = "Closed"
ERROR = "Error"
STATUSES = (PENDING, ESCALATED, CLOSED, ERROR)

# Audit action types
LOGIN_SUCCESS = "login_success"
LOGIN_FAILURE = "login_failure"
CLOSE_FRIVOLOUS = "close_frivolous"
ESCALATE_NON_FRIVOLOUS = "escalate_non_frivolous"
ACTION_ERROR = "error"


@dataclass
class Credential:
    client_id: str
    username: str
    secret: str = field(repr=False)
    expires_at: Optional[str] = None


@dataclass
class Dispute:
    id: str
    client_id: str
    control_number: str
    first_name: str = ""
    last_name: str = ""
    status: str = PENDING
    is_frivolous: Optional[bool] = None
    resolution_details: Dict[str, Any] = field(default_factory=dict)
    response_due_date: Optional[str] = None
    ticket_id: Optional[str] = None

    # Ingestion metadata (report columns), carried through untouched
    date_received: Optional[str] = None
    date_furnisher: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CaseDetail:
    # Field names mirror the portal's field keys; they appear verbatim in indicator text.
    disputeCode1: Optional[str] = None
    disputeCode2: Optional[str] = None
    images: Optional[str] = None
    fcraRelevantInfo: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


@dataclass(frozen=True)
class Categorization:
    is_frivolous: bool
    matched_reason: Optional[str] = None
    indicator_details: Optional[str] = None
    case_detail: CaseDetail = field(default_factory=CaseDetail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isFrivolous": self.is_frivolous,
            "matchedReason": self.matched_reason,
            "indicatorDetails": self.indicator_details,
            "caseDetail": self.case_detail.to_dict(),
        }


@dataclass
class AuditRecord:
    dispute_id: Optional[str]
    action_type: str
    action_details: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None


@dataclass
class ProcessingResult:
    dispute: Dispute
    categorization: Optional[Categorization] = None
    # Names of propagation steps that failed (store/tracker/audit)
    propagation_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispute": self.dispute.to_dict(),
            "categorization": self.categorization.to_dict() if self.categorization else None,
            "propagationErrors": list(self.propagation_errors),
        }


@dataclass
class RunReport:
    results: List[ProcessingResult] = field(default_factory=list)
    # [{"clientId": ..., "reason": ..., "error": ...}] for groups that never started
    client_failures: List[Dict[str, Any]] = field(default_factory=list)
    cancelled: bool = False

    @property
    def count(self) -> int:
        return len(self.results)

    def counts(self) -> Dict[str, int]:
        statuses = [r.dispute.status for r in self.results]
        return {
            "processed": len(statuses),
            "frivolous": statuses.count(CLOSED),
            "nonFrivolous": statuses.count(ESCALATED),
            "errored": statuses.count(ERROR),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "counts": self.counts(),
            "clientFailures": list(self.client_failures),
            "cancelled": self.cancelled,
            "results": [r.to_dict() for r in self.results],
        }
