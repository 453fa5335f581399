from typing import Optional

import dispute_triage.integrations.slack as slack
from dispute_triage.observability.logging import log
from dispute_triage.store.models import RunReport


def format_run_summary(report: RunReport, client_id: Optional[str] = None, dry_run: bool = False) -> str:
    c = report.counts()
    title = "Dispute review run complete"
    if client_id:
        title += f" for {client_id}"
    if dry_run:
        title += " (dry run)"
    lines = [
        f"*{title}*",
        f"Processed: {c['processed']}",
        f"Frivolous (closed): {c['frivolous']}",
        f"Non-frivolous (escalated): {c['nonFrivolous']}",
        f"Errored: {c['errored']}",
    ]
    if report.cancelled:
        lines.append("Run was cancelled before all clients were processed.")
    for f in report.client_failures:
        lines.append(f"• {f.get('clientId')}: not processed ({f.get('reason')})")
    return "\n".join(lines)


def notify_run_summary(report: RunReport, client_id: Optional[str] = None, dry_run: bool = False, channel=slack) -> bool:
    text = format_run_summary(report, client_id=client_id, dry_run=dry_run)
    try:
        ok = bool(channel.post_message(text))
    except Exception as e:
        log("run_summary_notify_failed", error=str(e)[:200])
        return False
    log("run_summary_notified", delivered=ok)
    return ok
