from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    # Omit to run every client with pending disputes
    clientId: Optional[str] = None
    dryRun: bool = False


class RunResponse(BaseModel):
    status: Literal["queued"] = "queued"
    jobId: str
    clientId: Optional[str] = None
    dryRun: bool = False


class DisputeView(BaseModel):
    id: str
    clientId: str
    controlNumber: str
    status: str
    isFrivolous: Optional[bool] = None
    responseDueDate: Optional[str] = None
    ticketId: Optional[str] = None
    updatedAt: Optional[str] = None
    resolutionDetails: Dict[str, Any] = Field(default_factory=dict)


class AuditEntry(BaseModel):
    actionType: str
    actionDetails: Dict[str, Any] = Field(default_factory=dict)
    createdAt: Optional[str] = None


class AuditTrail(BaseModel):
    disputeId: str
    entries: List[AuditEntry] = Field(default_factory=list)
