"""
Ticket tracker client (ClickUp REST API over httpx).

Every call raises TrackerError on transport failure or a non-2xx answer;
callers decide whether that is fatal.
"""
from typing import Optional

import httpx

from dispute_triage.core.errors import TrackerError
from dispute_triage.observability.logging import log
from dispute_triage.settings import settings

MAX_SEARCH_PAGES = 5


def _client() -> httpx.Client:
    return httpx.Client(
        base_url=settings.CLICKUP_BASE_URL,
        headers={
            "Authorization": settings.CLICKUP_API_TOKEN,
            "Content-Type": "application/json",
        },
        timeout=settings.REQUEST_TIMEOUT_SEC,
    )


def _request(method: str, path: str, **kwargs) -> dict:
    if not settings.CLICKUP_API_TOKEN:
        raise TrackerError("CLICKUP_API_TOKEN is not set", reason="not_configured")
    try:
        with _client() as client:
            resp = client.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        raise TrackerError(f"{method} {path} failed: {type(e).__name__}: {e}") from e

    if not (200 <= resp.status_code < 300):
        raise TrackerError(f"{method} {path} failed: HTTP {resp.status_code} {(resp.text or '')[:200]}")
    try:
        return resp.json()
    except ValueError:
        return {}


def find_by_control_number(control_number: str) -> Optional[str]:
    """Id of the first task in the configured list whose name carries the control number."""
    if not settings.CLICKUP_LIST_ID:
        raise TrackerError("CLICKUP_LIST_ID is not set", reason="not_configured")
    for page in range(MAX_SEARCH_PAGES):
        body = _request("GET", f"/list/{settings.CLICKUP_LIST_ID}/task", params={"page": page})
        tasks = body.get("tasks") or []
        for task in tasks:
            if control_number in (task.get("name") or ""):
                return str(task.get("id"))
        if body.get("last_page", True) or not tasks:
            break
    log("tracker_ticket_not_found", controlNumber=control_number)
    return None


def comment(ticket_id: str, text: str) -> None:
    _request("POST", f"/task/{ticket_id}/comment", json={"comment_text": text})


def set_status(ticket_id: str, label: str) -> None:
    _request("PUT", f"/task/{ticket_id}", json={"status": label})
