from typing import Optional

from fastapi import APIRouter, Body, Depends
from rq import Retry

from dispute_triage.api.auth import require_api_key
from dispute_triage.api.schemas import RunRequest, RunResponse
from dispute_triage.observability.logging import log
from dispute_triage.queue.jobs import run_triage_job
from dispute_triage.queue.rq_conn import get_queue

router = APIRouter()

# A run holds a portal session per client for its whole duration
JOB_TIMEOUT_SEC = 60 * 60


@router.post("/runs", response_model=RunResponse, dependencies=[Depends(require_api_key)])
def enqueue_run(payload: Optional[RunRequest] = Body(None)):
    req = payload or RunRequest()
    q = get_queue()
    job = q.enqueue(
        run_triage_job,
        req.clientId,
        req.dryRun,
        job_timeout=JOB_TIMEOUT_SEC,
        retry=Retry(max=2, interval=[60, 300]),
    )
    log(event="run_enqueued", jobId=job.id, clientId=req.clientId or "*", dryRun=req.dryRun)
    return RunResponse(jobId=job.id, clientId=req.clientId, dryRun=req.dryRun)
