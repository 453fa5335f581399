"""
Message-channel client (Slack Web API over httpx).

Two uses:
- OTP delivery: the portal's one-time passcode is forwarded into a channel;
  get_code() picks the newest unconsumed 6-digit code inside the window.
- Notifications: post_message() for run summaries and alerts.
"""
import re
import time
from typing import List, Optional

import httpx

from dispute_triage.core.errors import ChannelError
from dispute_triage.observability.logging import log
from dispute_triage.settings import settings

OTP_RE = re.compile(r"\b\d{6}\b")
ACK_REACTION = "white_check_mark"
HISTORY_LIMIT = 5


def _client() -> httpx.Client:
    return httpx.Client(
        base_url=settings.SLACK_BASE_URL,
        headers={"Authorization": f"Bearer {settings.SLACK_TOKEN}"},
        timeout=settings.REQUEST_TIMEOUT_SEC,
    )


def _call(method: str, *, params: Optional[dict] = None, json: Optional[dict] = None) -> dict:
    if not settings.SLACK_TOKEN:
        raise ChannelError("SLACK_TOKEN is not set", reason="not_configured")
    try:
        with _client() as client:
            if json is not None:
                resp = client.post(f"/{method}", json=json)
            else:
                resp = client.get(f"/{method}", params=params)
    except httpx.HTTPError as e:
        raise ChannelError(f"{method} failed: {type(e).__name__}: {e}") from e

    if not (200 <= resp.status_code < 300):
        raise ChannelError(f"{method} failed: HTTP {resp.status_code}")
    try:
        body = resp.json()
    except ValueError as e:
        raise ChannelError(f"{method} failed: response is not JSON: {(resp.text or '')[:200]}") from e
    if not isinstance(body, dict):
        raise ChannelError(f"{method} failed: unexpected response shape")
    if not body.get("ok"):
        raise ChannelError(f"{method} failed: {body.get('error', 'unknown')}")
    return body


def _already_consumed(msg: dict) -> bool:
    return any(r.get("name") == ACK_REACTION for r in (msg.get("reactions") or []))


def _pick_code(messages: List[dict], window_sec: int, now: float) -> Optional[tuple]:
    """(code, ts) from the newest matching message inside the window."""
    oldest = now - window_sec
    for msg in messages:
        try:
            ts = float(msg.get("ts") or 0)
        except (TypeError, ValueError):
            continue
        text = msg.get("text") or ""
        if ts <= oldest or _already_consumed(msg):
            continue
        m = OTP_RE.search(text)
        if m:
            return m.group(0), msg.get("ts")
    return None


def acknowledge(ts: str, channel: Optional[str] = None) -> None:
    """Mark a consumed code. Advisory: failures are logged only."""
    try:
        _call("reactions.add", json={
            "channel": channel or settings.SLACK_OTP_CHANNEL,
            "timestamp": ts,
            "name": ACK_REACTION,
        })
    except Exception as e:
        log("otp_ack_failed", messageTs=ts, error=str(e)[:200])


def get_code(within_window_sec: Optional[int] = None) -> Optional[str]:
    """
    Newest unconsumed 6-digit code posted within the window, or None.
    Raises ChannelError when the channel itself cannot be read.
    """
    window = int(within_window_sec or settings.OTP_WINDOW_SEC)
    body = _call("conversations.history", params={
        "channel": settings.SLACK_OTP_CHANNEL,
        "limit": HISTORY_LIMIT,
    })
    picked = _pick_code(body.get("messages") or [], window, time.time())
    if not picked:
        log("otp_not_found", channel=settings.SLACK_OTP_CHANNEL, windowSec=window)
        return None
    code, ts = picked
    acknowledge(ts)
    log("otp_found", channel=settings.SLACK_OTP_CHANNEL)
    return code


def post_message(text: str, channel: Optional[str] = None, blocks: Optional[list] = None) -> bool:
    """Post to a channel; returns False (no raise) when delivery fails."""
    target = channel or settings.SLACK_ALERT_CHANNEL or settings.SLACK_OTP_CHANNEL
    payload = {"channel": target, "text": text}
    if blocks:
        payload["blocks"] = blocks
    try:
        _call("chat.postMessage", json=payload)
        return True
    except ChannelError as e:
        log("slack_post_failed", channel=target, reason=e.reason, error=str(e)[:200])
        return False
