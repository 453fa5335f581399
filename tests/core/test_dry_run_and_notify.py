from unittest.mock import MagicMock

from dispute_triage.core.dry_run import SAMPLE_DISPUTES, build_dry_run_pipeline
from dispute_triage.core.notify import format_run_summary, notify_run_summary
from dispute_triage.store.models import CLOSED, Dispute, ERROR, ESCALATED, PENDING, ProcessingResult, RunReport


def test_dry_run_uses_fixtures_end_to_end():
    pipeline, store, tracker = build_dry_run_pipeline()
    report = pipeline.run()

    assert report.counts() == {"processed": 2, "frivolous": 1, "nonFrivolous": 1, "errored": 0}
    assert store.disputes["dry-dispute-1"].status == ESCALATED
    assert store.disputes["dry-dispute-2"].status == CLOSED
    assert store.disputes["dry-dispute-2"].resolution_details["simulated"] is True
    assert tracker.statuses == [("dry-task-1", "NEED TO ESCALATE"), ("dry-task-2", "CLOSED")]
    assert len(store.audit) == 2


def test_dry_run_does_not_mutate_sample_disputes():
    pipeline, _, _ = build_dry_run_pipeline()
    pipeline.run()
    assert all(d.status == PENDING for d in SAMPLE_DISPUTES)


def test_dry_run_missing_case():
    disputes = [Dispute(id="x", client_id="TestClient", control_number="NOPE123")]
    pipeline, store, tracker = build_dry_run_pipeline(disputes=disputes, missing_cases=["NOPE123"])
    report = pipeline.run()

    assert report.results[0].dispute.status == ERROR
    assert store.disputes["x"].resolution_details["stage"] == "locate"
    # no ticket ref and the recording tracker finds none
    assert tracker.comments == []


def _report():
    return RunReport(
        results=[
            ProcessingResult(dispute=Dispute(id="1", client_id="A", control_number="c1", status=CLOSED)),
            ProcessingResult(dispute=Dispute(id="2", client_id="A", control_number="c2", status=ESCALATED)),
            ProcessingResult(dispute=Dispute(id="3", client_id="A", control_number="c3", status=ERROR)),
        ],
        client_failures=[{"clientId": "B", "reason": "otp_exhausted", "error": "x"}],
    )


def test_format_run_summary():
    text = format_run_summary(_report(), client_id="A")
    assert text.startswith("*Dispute review run complete for A*")
    assert "Processed: 3" in text
    assert "Frivolous (closed): 1" in text
    assert "Non-frivolous (escalated): 1" in text
    assert "Errored: 1" in text
    assert "B: not processed (otp_exhausted)" in text


def test_notify_run_summary_delivers():
    channel = MagicMock()
    channel.post_message.return_value = True
    assert notify_run_summary(_report(), dry_run=True, channel=channel) is True
    assert "(dry run)" in channel.post_message.call_args.args[0]


def test_notify_run_summary_never_raises():
    channel = MagicMock()
    channel.post_message.side_effect = RuntimeError("socket closed")
    assert notify_run_summary(_report(), channel=channel) is False
