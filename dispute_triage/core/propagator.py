"""
Outcome Propagator
------------------
Pushes a dispute's terminal outcome to the three downstream systems, in
order: datastore, ticket tracker, audit trail. Each step is attempted even
when an earlier one failed; failures are logged and reported back on the
ProcessingResult, never raised. There is no cross-system transaction, so a
window where (say) the store is updated but the ticket is not is expected.
"""
from dataclasses import replace
from typing import Any, Dict, List, Optional

import dispute_triage.integrations.clickup as clickup
import dispute_triage.observability.metrics as metrics
import dispute_triage.store.dispute_repo as dispute_repo
from dispute_triage.core.errors import PropagationError
from dispute_triage.observability.logging import log
from dispute_triage.settings import settings
from dispute_triage.store.models import (
    ACTION_ERROR,
    AuditRecord,
    CLOSE_FRIVOLOUS,
    CLOSED,
    Categorization,
    Dispute,
    ERROR,
    ESCALATE_NON_FRIVOLOUS,
    ESCALATED,
    ProcessingResult,
)

FRIVOLOUS_COMMENT = "This dispute has been categorized as FRIVOLOUS and has been closed in E-Oscar."
NON_FRIVOLOUS_COMMENT = "This dispute has been categorized as NOT FRIVOLOUS.\n\nIndicator: {indicator}"
ERROR_COMMENT = "Automated review failed: {error}"


def _verdict(categorization: Optional[Categorization], failed: bool):
    """(status, is_frivolous, audit action type)"""
    if failed or categorization is None:
        return ERROR, None, ACTION_ERROR
    if categorization.is_frivolous:
        return CLOSED, True, CLOSE_FRIVOLOUS
    return ESCALATED, False, ESCALATE_NON_FRIVOLOUS


def _ticket_update(status: str, categorization: Optional[Categorization], resolution: Dict[str, Any]):
    """(comment, status label or None)"""
    if status == CLOSED:
        return FRIVOLOUS_COMMENT, settings.CLICKUP_STATUS_CLOSED
    if status == ESCALATED:
        return NON_FRIVOLOUS_COMMENT.format(indicator=categorization.indicator_details), settings.CLICKUP_STATUS_ESCALATE
    # Errors leave the ticket's workflow status for a human to decide
    return ERROR_COMMENT.format(error=resolution.get("error", "unknown error")), None


class OutcomePropagator:
    def __init__(self, store=dispute_repo, tracker=clickup):
        self.store = store
        self.tracker = tracker

    def propagate(
        self,
        dispute: Dispute,
        categorization: Optional[Categorization],
        resolution: Dict[str, Any],
        failed: bool = False,
    ) -> ProcessingResult:
        status, is_frivolous, action_type = _verdict(categorization, failed)
        comment, label = _ticket_update(status, categorization, resolution)

        details = dict(resolution or {})
        if categorization is not None:
            details["categorization"] = categorization.to_dict()
        details["trackerComment"] = comment
        if label:
            details["trackerStatus"] = label

        updated = replace(dispute, status=status, is_frivolous=is_frivolous, resolution_details=details)
        errors: List[str] = []

        # 1) datastore
        try:
            self.store.update_dispute(updated)
        except Exception as e:
            self._step_failed("store", updated, e, errors)

        # 2) tracker
        try:
            self._update_ticket(updated, comment, label)
        except Exception as e:
            self._step_failed("tracker", updated, e, errors)

        # 3) audit (best-effort)
        try:
            self.store.append_audit(AuditRecord(
                dispute_id=updated.id,
                action_type=action_type,
                action_details=self._audit_details(status, categorization, details),
            ))
        except Exception as e:
            self._step_failed("audit", updated, e, errors)

        metrics.increment_outcome(status)
        log(
            "dispute_propagated",
            disputeId=updated.id,
            controlNumber=updated.control_number,
            status=status,
            failedSteps=errors,
        )
        return ProcessingResult(dispute=updated, categorization=categorization, propagation_errors=errors)

    def _update_ticket(self, dispute: Dispute, comment: str, label: Optional[str]) -> None:
        ticket_id = dispute.ticket_id or self.tracker.find_by_control_number(dispute.control_number)
        if not ticket_id:
            log("tracker_update_skipped", disputeId=dispute.id, controlNumber=dispute.control_number)
            return
        dispute.ticket_id = ticket_id
        self.tracker.comment(ticket_id, comment)
        if label:
            self.tracker.set_status(ticket_id, label)
        log("tracker_updated", disputeId=dispute.id, ticketId=ticket_id, trackerStatus=label)

    @staticmethod
    def _audit_details(status: str, categorization: Optional[Categorization], details: Dict[str, Any]) -> Dict[str, Any]:
        if status == ESCALATED:
            return {
                "indicator": categorization.indicator_details,
                "reason": categorization.matched_reason,
                "categorization": categorization.to_dict(),
            }
        if status == CLOSED:
            return {"categorization": categorization.to_dict(), "resolution": details}
        return {
            "error": details.get("error"),
            "errorType": details.get("errorType"),
            "stage": details.get("stage"),
        }

    @staticmethod
    def _step_failed(step: str, dispute: Dispute, exc: Exception, errors: List[str]) -> None:
        err = exc if isinstance(exc, PropagationError) else PropagationError(f"{step}: {exc}", reason=f"{step}_failed")
        errors.append(step)
        log(
            "propagation_step_failed",
            step=step,
            disputeId=dispute.id,
            controlNumber=dispute.control_number,
            reason=err.reason,
            errorType=type(exc).__name__,
            error=str(exc)[:300],
        )
