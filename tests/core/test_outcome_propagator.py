from unittest.mock import MagicMock

import pytest

from dispute_triage.core.propagator import FRIVOLOUS_COMMENT, OutcomePropagator
from dispute_triage.core.rules import categorize
from dispute_triage.store.models import (
    ACTION_ERROR,
    CLOSE_FRIVOLOUS,
    CLOSED,
    CaseDetail,
    Dispute,
    ERROR,
    ESCALATE_NON_FRIVOLOUS,
    ESCALATED,
    PENDING,
)


@pytest.fixture
def dispute():
    return Dispute(id="d1", client_id="ACME", control_number="CTRL123", ticket_id="task-1")


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def tracker():
    return MagicMock()


FRIVOLOUS = categorize(CaseDetail(disputeCode1="Not mine", images="--", fcraRelevantInfo="--"))
NON_FRIVOLOUS = categorize(CaseDetail(disputeCode1="103 - Account belongs to someone else"))


def _audit(store):
    return store.append_audit.call_args.args[0]


def test_closed_outcome(dispute, store, tracker):
    res = OutcomePropagator(store=store, tracker=tracker).propagate(dispute, FRIVOLOUS, {"action": "close"})

    saved = store.update_dispute.call_args.args[0]
    assert saved.status == CLOSED
    assert saved.is_frivolous is True
    assert saved.resolution_details["action"] == "close"
    assert saved.resolution_details["categorization"]["isFrivolous"] is True
    tracker.comment.assert_called_once_with("task-1", FRIVOLOUS_COMMENT)
    tracker.set_status.assert_called_once_with("task-1", "CLOSED")
    assert _audit(store).action_type == CLOSE_FRIVOLOUS
    assert res.propagation_errors == []
    # the input dispute is left alone
    assert dispute.status == PENDING


def test_escalated_outcome(dispute, store, tracker):
    res = OutcomePropagator(store=store, tracker=tracker).propagate(dispute, NON_FRIVOLOUS, {"action": "escalate"})

    assert res.dispute.status == ESCALATED
    assert res.dispute.is_frivolous is False
    text = tracker.comment.call_args.args[1]
    assert "NOT FRIVOLOUS" in text
    assert "Indicator: disputeCode1: 103 - Account belongs to someone else" in text
    tracker.set_status.assert_called_once_with("task-1", "NEED TO ESCALATE")
    rec = _audit(store)
    assert rec.action_type == ESCALATE_NON_FRIVOLOUS
    assert rec.action_details["reason"] == "disputeCode1 contains 103"


def test_error_outcome_comments_without_status_change(dispute, store, tracker):
    res = OutcomePropagator(store=store, tracker=tracker).propagate(
        dispute, None, {"error": "Case not found for control number: CTRL123", "stage": "locate"}, failed=True,
    )

    assert res.dispute.status == ERROR
    assert res.dispute.is_frivolous is None
    assert res.dispute.resolution_details["error"] == "Case not found for control number: CTRL123"
    tracker.comment.assert_called_once_with("task-1", "Automated review failed: Case not found for control number: CTRL123")
    tracker.set_status.assert_not_called()
    rec = _audit(store)
    assert rec.action_type == ACTION_ERROR
    assert rec.action_details["stage"] == "locate"


def test_failed_after_categorize_keeps_categorization(dispute, store, tracker):
    res = OutcomePropagator(store=store, tracker=tracker).propagate(
        dispute, FRIVOLOUS, {"error": "rejected", "stage": "act"}, failed=True,
    )
    assert res.dispute.status == ERROR
    assert res.dispute.is_frivolous is None
    assert res.dispute.resolution_details["categorization"]["isFrivolous"] is True


def test_store_failure_does_not_stop_later_steps(dispute, store, tracker):
    store.update_dispute.side_effect = ConnectionError("redis down")
    res = OutcomePropagator(store=store, tracker=tracker).propagate(dispute, FRIVOLOUS, {})

    tracker.comment.assert_called_once()
    store.append_audit.assert_called_once()
    assert res.propagation_errors == ["store"]
    assert res.dispute.status == CLOSED


def test_tracker_failure_does_not_stop_audit(dispute, store, tracker):
    tracker.comment.side_effect = RuntimeError("HTTP 500")
    res = OutcomePropagator(store=store, tracker=tracker).propagate(dispute, NON_FRIVOLOUS, {})

    store.update_dispute.assert_called_once()
    store.append_audit.assert_called_once()
    tracker.set_status.assert_not_called()
    assert res.propagation_errors == ["tracker"]


def test_audit_failure_is_swallowed(dispute, store, tracker):
    store.append_audit.side_effect = RuntimeError("list full")
    res = OutcomePropagator(store=store, tracker=tracker).propagate(dispute, FRIVOLOUS, {})
    assert res.propagation_errors == ["audit"]
    assert res.dispute.status == CLOSED


def test_missing_ticket_is_skipped(store, tracker):
    d = Dispute(id="d2", client_id="ACME", control_number="CTRL999")
    tracker.find_by_control_number.return_value = None
    res = OutcomePropagator(store=store, tracker=tracker).propagate(d, FRIVOLOUS, {})

    tracker.find_by_control_number.assert_called_once_with("CTRL999")
    tracker.comment.assert_not_called()
    assert res.propagation_errors == []


def test_ticket_found_by_control_number(store, tracker):
    d = Dispute(id="d2", client_id="ACME", control_number="CTRL999")
    tracker.find_by_control_number.return_value = "task-9"
    res = OutcomePropagator(store=store, tracker=tracker).propagate(d, FRIVOLOUS, {})

    tracker.comment.assert_called_once_with("task-9", FRIVOLOUS_COMMENT)
    assert res.dispute.ticket_id == "task-9"
