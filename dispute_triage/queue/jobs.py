from typing import Any, Dict, Optional

from dispute_triage.core.dry_run import build_dry_run_pipeline
from dispute_triage.core.notify import notify_run_summary
from dispute_triage.core.pipeline import TriagePipeline
from dispute_triage.core.errors import TriageError
from dispute_triage.observability.logging import log
from dispute_triage.settings import settings


def run_triage_job(client_id: Optional[str] = None, dry_run: bool = False) -> Dict[str, Any]:
    """
    Background job for one triage run (optionally scoped to a client).
    Per-dispute and per-client failures are already folded into the report;
    anything that escapes the pipeline is re-raised so RQ can retry it.
    """
    log(event="triage_job_start", clientId=client_id or "*", dryRun=dry_run)
    try:
        if dry_run:
            pipeline, _, _ = build_dry_run_pipeline()
        else:
            pipeline = TriagePipeline()
        report = pipeline.run(client_id)
    except TriageError as e:
        log(event="triage_job_failed", clientId=client_id or "*", reason=e.reason, error=str(e))
        raise
    except Exception as e:
        log(event="triage_job_exception", clientId=client_id or "*", error=str(e))
        raise

    if settings.NOTIFY_ON_RUN and not dry_run:
        notify_run_summary(report, client_id=client_id)
    return report.to_dict()
