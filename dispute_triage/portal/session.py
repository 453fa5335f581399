"""
Portal Session Manager
----------------------
Owns one authenticated portal session per client credential.

State machine:
    UNAUTHENTICATED -> AWAITING_CHALLENGE -> AUTHENTICATED
    UNAUTHENTICATED | AWAITING_CHALLENGE -> FAILED

A failed login always releases the browser before the AuthError surfaces,
and close() is safe to call any number of times.
"""
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

import dispute_triage.integrations.slack as slack
import dispute_triage.observability.metrics as metrics
import dispute_triage.store.dispute_repo as dispute_repo
from dispute_triage.core.errors import AuthError, ChannelError
from dispute_triage.observability.logging import log
from dispute_triage.portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from dispute_triage.settings import settings
from dispute_triage.store.models import AuditRecord, Credential, LOGIN_FAILURE, LOGIN_SUCCESS
from dispute_triage.utils.time import now_iso

UNAUTHENTICATED = "UNAUTHENTICATED"
AWAITING_CHALLENGE = "AWAITING_CHALLENGE"
AUTHENTICATED = "AUTHENTICATED"
FAILED = "FAILED"

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@dataclass
class PortalSession:
    client_id: str
    page: Any
    state: str = UNAUTHENTICATED
    created_at: str = field(default_factory=now_iso)
    closed: bool = False
    # Release callbacks, run in order on close()
    _closers: List[Callable[[], None]] = field(default_factory=list, repr=False)

    @property
    def authenticated(self) -> bool:
        return self.state == AUTHENTICATED and not self.closed


def launch_browser() -> Tuple[Any, List[Callable[[], None]]]:
    """Start Chromium and return (page, closers)."""
    pw = sync_playwright().start()
    try:
        browser = pw.chromium.launch(headless=settings.PORTAL_HEADLESS, args=BROWSER_ARGS)
        context = browser.new_context(viewport={"width": 1280, "height": 800})
        page = context.new_page()
        page.set_default_timeout(settings.ELEMENT_TIMEOUT_MS)
        page.set_default_navigation_timeout(settings.NAVIGATION_TIMEOUT_MS)
    except Exception:
        pw.stop()
        raise
    return page, [context.close, browser.close, pw.stop]


class SessionManager:
    def __init__(
        self,
        otp_channel=slack,
        audit=dispute_repo,
        launcher: Callable = launch_browser,
        selectors: PortalSelectors = DEFAULT_SELECTORS,
        cancel: Optional[threading.Event] = None,
    ):
        self.otp_channel = otp_channel
        self.audit = audit
        self.launcher = launcher
        self.sel = selectors
        self.cancel = cancel or threading.Event()

    # ------------------------------------------------------------------ login

    def login(self, credential: Credential) -> PortalSession:
        if not credential or not credential.username or not credential.secret:
            err = AuthError("Invalid credentials", reason="invalid_credentials")
            self._record(LOGIN_FAILURE, credential, error=err)
            raise err

        log("login_start", clientId=credential.client_id, username=credential.username)
        started = time.monotonic()
        session = None
        try:
            page, closers = self.launcher()
            session = PortalSession(client_id=credential.client_id, page=page, _closers=closers)
            self._submit_credentials(page, credential)

            if page.query_selector(self.sel.otp_input):
                session.state = AWAITING_CHALLENGE
                log("otp_challenge_detected", clientId=credential.client_id)
                self._resolve_challenge(page, credential)

            if not self._is_authenticated(page):
                raise AuthError("Authenticated page marker not found after login", reason="verification_failed")

            session.state = AUTHENTICATED
        except Exception as e:
            err = e if isinstance(e, AuthError) else self._as_auth_error(e)
            if session is not None:
                session.state = FAILED
                self.close(session)
            log(
                "login_failed",
                clientId=credential.client_id,
                username=credential.username,
                reason=err.reason,
                error=str(err)[:300],
                elapsedMs=int((time.monotonic() - started) * 1000),
            )
            self._record(LOGIN_FAILURE, credential, error=err)
            if err is e:
                raise
            raise err from e

        log(
            "login_success",
            clientId=credential.client_id,
            username=credential.username,
            elapsedMs=int((time.monotonic() - started) * 1000),
        )
        self._record(LOGIN_SUCCESS, credential)
        return session

    def _submit_credentials(self, page, credential: Credential) -> None:
        page.goto(settings.PORTAL_URL, wait_until="networkidle", timeout=settings.NAVIGATION_TIMEOUT_MS)
        page.wait_for_selector(self.sel.username, timeout=settings.ELEMENT_TIMEOUT_MS)
        page.fill(self.sel.username, credential.username)
        page.fill(self.sel.password, credential.secret)
        with page.expect_navigation(wait_until="networkidle", timeout=settings.NAVIGATION_TIMEOUT_MS):
            page.click(self.sel.login_submit)

    def _resolve_challenge(self, page, credential: Credential) -> None:
        """
        Bounded OTP loop: fetch a code, submit, and check whether the
        challenge screen is gone. Each miss costs one attempt.
        """
        page.wait_for_selector(self.sel.otp_input, timeout=settings.ELEMENT_TIMEOUT_MS)
        max_attempts = max(1, int(settings.OTP_MAX_ATTEMPTS))

        for attempt in range(1, max_attempts + 1):
            code = None
            try:
                code = self.otp_channel.get_code(settings.OTP_WINDOW_SEC)
            except ChannelError as e:
                log("otp_channel_error", clientId=credential.client_id, attempt=attempt, error=str(e)[:200])

            if code:
                log("otp_attempt", clientId=credential.client_id, attempt=attempt)
                page.fill(self.sel.otp_input, code)
                try:
                    with page.expect_navigation(wait_until="networkidle", timeout=settings.NAVIGATION_TIMEOUT_MS):
                        page.click(self.sel.otp_submit)
                except PlaywrightTimeoutError:
                    log("otp_submit_no_navigation", clientId=credential.client_id, attempt=attempt)

                if not page.query_selector(self.sel.otp_input):
                    log("otp_accepted", clientId=credential.client_id, attempt=attempt)
                    return

                log("otp_rejected", clientId=credential.client_id, attempt=attempt)
                page.fill(self.sel.otp_input, "")

            if attempt < max_attempts and self.cancel.wait(settings.OTP_RETRY_DELAY_SEC):
                raise AuthError("Login cancelled while waiting for OTP", reason="cancelled")

        raise AuthError(f"No valid OTP after {max_attempts} attempts", reason="otp_exhausted")

    def _is_authenticated(self, page) -> bool:
        for marker in self.sel.authenticated_markers:
            if page.query_selector(marker):
                return True
        try:
            return self.sel.authenticated_title_fragment in (page.title() or "")
        except PlaywrightError:
            return False

    @staticmethod
    def _as_auth_error(exc: Exception) -> AuthError:
        if isinstance(exc, PlaywrightTimeoutError):
            return AuthError(f"Portal timed out during login: {exc}", reason="portal_timeout")
        return AuthError(f"Portal error during login: {type(exc).__name__}: {exc}", reason="portal_error")

    def _record(self, action_type: str, credential: Credential, error: Optional[Exception] = None) -> None:
        details = {
            "clientId": getattr(credential, "client_id", None),
            "username": getattr(credential, "username", None),
            "timestamp": now_iso(),
        }
        if error is not None:
            details["error"] = str(error)
            details["reason"] = getattr(error, "reason", type(error).__name__)
        try:
            self.audit.append_audit(AuditRecord(dispute_id=None, action_type=action_type, action_details=details))
        except Exception as e:
            log("login_audit_failed", actionType=action_type, error=str(e)[:200])
        metrics.increment_login(action_type == LOGIN_SUCCESS)

    # ------------------------------------------------------------------ teardown

    def close(self, session: PortalSession) -> None:
        if session is None or session.closed:
            return
        session.closed = True
        for closer in session._closers:
            try:
                closer()
            except Exception as e:
                log("session_close_error", clientId=session.client_id, error=str(e)[:200])
        log("session_closed", clientId=session.client_id, state=session.state)

    @contextmanager
    def open(self, credential: Credential):
        """Scoped session: closed on exit whatever happens inside."""
        session = self.login(credential)
        try:
            yield session
        finally:
            self.close(session)
