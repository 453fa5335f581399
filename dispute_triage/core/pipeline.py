"""
Pipeline Orchestrator
---------------------
Pending disputes -> grouped by client -> one portal session per client ->
per dispute: locate -> extract -> categorize -> act -> propagate.

Processing is sequential across clients and across disputes. One dispute's
failure becomes a persisted Error outcome and the loop moves on; a failed
login skips only that client's group and leaves its disputes Pending.
Cancellation is honoured between clients and between disputes only, never
inside a dispute's action sequence.
"""
import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

import dispute_triage.observability.metrics as metrics
import dispute_triage.portal.actions as actions
import dispute_triage.store.credentials as credential_store
import dispute_triage.store.dispute_repo as dispute_repo
from dispute_triage.core.errors import NotFoundError
from dispute_triage.core.propagator import OutcomePropagator
from dispute_triage.core.rules import categorize
from dispute_triage.observability.logging import log
from dispute_triage.portal.extractor import extract
from dispute_triage.portal.locator import NotFound, find_case
from dispute_triage.portal.session import SessionManager
from dispute_triage.settings import settings
from dispute_triage.store.models import Dispute, ERROR, ProcessingResult, RunReport
from dispute_triage.utils.lock import ClientLease, client_lock


def group_by_client(disputes: List[Dispute]) -> Dict[str, List[Dispute]]:
    """Group while keeping the query's (due-date) order inside each group."""
    groups: Dict[str, List[Dispute]] = OrderedDict()
    for d in disputes:
        groups.setdefault(d.client_id, []).append(d)
    return groups


class TriagePipeline:
    def __init__(
        self,
        store=dispute_repo,
        credentials=credential_store,
        session_manager: Optional[SessionManager] = None,
        locator: Callable = find_case,
        extractor: Callable = extract,
        rules: Callable = categorize,
        executor=actions,
        propagator: Optional[OutcomePropagator] = None,
        lock: Callable = client_lock,
        cancel: Optional[threading.Event] = None,
        dispute_delay_ms: Optional[int] = None,
    ):
        self.cancel = cancel or threading.Event()
        self.store = store
        self.credentials = credentials
        self.sessions = session_manager or SessionManager(audit=store, cancel=self.cancel)
        self.locator = locator
        self.extractor = extractor
        self.rules = rules
        self.executor = executor
        self.propagator = propagator or OutcomePropagator(store=store)
        self.lock = lock
        self.dispute_delay_ms = settings.DISPUTE_DELAY_MS if dispute_delay_ms is None else dispute_delay_ms

    # ------------------------------------------------------------------ run

    def run(self, client_id: Optional[str] = None) -> RunReport:
        started = time.monotonic()
        report = RunReport()
        log("run_start", clientId=client_id or "*")

        try:
            disputes = self.store.list_pending(client_id)
        except Exception as e:
            log("pending_query_failed", clientId=client_id or "*", errorType=type(e).__name__, error=str(e)[:300])
            report.client_failures.append({"clientId": client_id or "*", "reason": "datastore_unavailable", "error": str(e)})
            return report

        if not disputes:
            log("run_empty", clientId=client_id or "*")
            return report

        groups = group_by_client(disputes)
        log("run_groups", clients=list(groups.keys()), disputes=len(disputes))

        for client, group in groups.items():
            if self.cancel.is_set():
                report.cancelled = True
                log("run_cancelled", beforeClient=client)
                break
            self._run_client(client, group, report)

        counts = report.counts()
        duration_ms = int((time.monotonic() - started) * 1000)
        metrics.record_run(duration_ms, counts)
        log(
            "run_complete",
            clientId=client_id or "*",
            durationMs=duration_ms,
            clientFailures=report.client_failures,
            cancelled=report.cancelled,
            **counts,
        )
        return report

    def _fail_group(self, client: str, group: List[Dispute], report: RunReport, exc: Exception) -> None:
        reason = getattr(exc, "reason", type(exc).__name__)
        report.client_failures.append({"clientId": client, "reason": reason, "error": str(exc), "disputes": len(group)})
        log("client_group_aborted", clientId=client, reason=reason, disputesLeftPending=len(group), error=str(exc)[:300])

    def _run_client(self, client: str, group: List[Dispute], report: RunReport) -> None:
        log("client_group_start", clientId=client, disputes=len(group))
        try:
            with self.lock(client) as lease:
                try:
                    credential = self.credentials.get_credential(client)
                    session = self.sessions.login(credential)
                except Exception as e:
                    self._fail_group(client, group, report, e)
                    return

                try:
                    if session.client_id != client:
                        raise RuntimeError(f"Session for {session.client_id} handed to client {client}")
                    self._run_disputes(session, group, report, lease)
                finally:
                    self.sessions.close(session)
        except Exception as e:
            self._fail_group(client, group, report, e)
            return
        log("client_group_complete", clientId=client, disputes=len(group))

    def _run_disputes(self, session, group: List[Dispute], report: RunReport, lease: Optional[ClientLease] = None) -> None:
        for i, dispute in enumerate(group):
            # the pause doubles as the cancellation window
            if self.cancel.is_set() or (
                i and self.dispute_delay_ms > 0 and self.cancel.wait(self.dispute_delay_ms / 1000.0)
            ):
                report.cancelled = True
                log("run_cancelled", clientId=session.client_id, beforeDispute=dispute.id)
                return
            if i and lease is not None and not lease.refresh():
                left = len(group) - i
                report.client_failures.append({
                    "clientId": session.client_id,
                    "reason": "lock_lost",
                    "error": "Client lock expired or was taken over mid-batch",
                    "disputes": left,
                })
                log("client_lock_lost", clientId=session.client_id, beforeDispute=dispute.id, disputesLeftPending=left)
                return
            try:
                report.results.append(self.process_dispute(session, dispute))
            except Exception as e:
                # propagate() does not raise; this only guards the sibling loop
                log("dispute_unhandled", disputeId=dispute.id, errorType=type(e).__name__, error=str(e)[:300])
                dispute.status = ERROR
                dispute.resolution_details = {"error": str(e), "stage": "propagate"}
                report.results.append(ProcessingResult(dispute=dispute, propagation_errors=["store", "tracker", "audit"]))

    # ------------------------------------------------------------------ one dispute

    def process_dispute(self, session, dispute: Dispute) -> ProcessingResult:
        log("dispute_start", disputeId=dispute.id, controlNumber=dispute.control_number, clientId=dispute.client_id)
        stage = "locate"
        categorization = None
        try:
            found = self.locator(session, dispute.control_number)
            if isinstance(found, NotFound):
                raise NotFoundError(f"Case not found for control number: {dispute.control_number}")

            stage = "extract"
            detail = self.extractor(found)

            stage = "categorize"
            categorization = self.rules(detail)
            log(
                "dispute_categorized",
                disputeId=dispute.id,
                frivolous=categorization.is_frivolous,
                reason=categorization.matched_reason,
            )

            stage = "act"
            if categorization.is_frivolous:
                resolution = self.executor.close_frivolous(found)
            else:
                resolution = self.executor.escalate(categorization)
        except Exception as e:
            log(
                "dispute_failed",
                disputeId=dispute.id,
                controlNumber=dispute.control_number,
                stage=stage,
                errorType=type(e).__name__,
                error=str(e)[:300],
            )
            return self.propagator.propagate(
                dispute,
                categorization,
                {"error": str(e), "errorType": getattr(e, "reason", type(e).__name__), "stage": stage},
                failed=True,
            )

        result = self.propagator.propagate(dispute, categorization, resolution)
        log("dispute_processed", disputeId=dispute.id, status=result.dispute.status)
        return result
