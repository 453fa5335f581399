"""
Verdict-specific portal actions. Both return a resolution-details payload;
persistence is left to the propagator.
"""
from typing import Any, Dict

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from dispute_triage.core.errors import ActionError, PortalTimeout
from dispute_triage.observability.logging import log
from dispute_triage.portal.locator import CaseHandle
from dispute_triage.portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from dispute_triage.settings import settings
from dispute_triage.store.models import Categorization
from dispute_triage.utils.time import now_iso

MAX_CONTINUE_CLICKS = 3
RESPONSE_CODE_LABEL = "01 - Information accurate as of last submission. No changes."


def _submit(page, sel: PortalSelectors) -> None:
    with page.expect_navigation(wait_until="networkidle", timeout=settings.NAVIGATION_TIMEOUT_MS):
        page.click(sel.submit_button)


def _has_error(page, sel: PortalSelectors) -> bool:
    return page.query_selector(sel.error_marker) is not None


def _click_continue(page, sel: PortalSelectors) -> int:
    clicks = 0
    for i in range(MAX_CONTINUE_CLICKS):
        if i == 0:
            page.wait_for_selector(sel.continue_button, timeout=settings.ELEMENT_TIMEOUT_MS)
        elif page.query_selector(sel.response_code) or not page.query_selector(sel.continue_button):
            # Response form already reached
            break
        with page.expect_navigation(wait_until="networkidle", timeout=settings.NAVIGATION_TIMEOUT_MS):
            page.click(sel.continue_button)
        clicks += 1
        log("continue_clicked", click=clicks, of=MAX_CONTINUE_CLICKS)
    return clicks


def close_frivolous(handle: CaseHandle, selectors: PortalSelectors = DEFAULT_SELECTORS) -> Dict[str, Any]:
    """
    Close the case as accurate (response code 01).

    A submission that surfaces the error marker gets exactly one recovery:
    clear account information, resubmit. A second error raises ActionError.
    """
    page = handle.page
    recoveries = 0
    try:
        clicks = _click_continue(page, selectors)

        page.wait_for_selector(selectors.response_code, timeout=settings.ELEMENT_TIMEOUT_MS)
        page.select_option(selectors.response_code, settings.PORTAL_RESPONSE_CODE)
        _submit(page, selectors)

        if _has_error(page, selectors):
            log("close_submit_error_recovering", controlNumber=handle.control_number)
            recoveries = 1
            page.click(selectors.clear_account_info)
            _submit(page, selectors)
            if _has_error(page, selectors):
                raise ActionError(
                    f"Portal rejected close for {handle.control_number} after clear-and-resubmit"
                )
    except PlaywrightTimeoutError as e:
        raise PortalTimeout(f"Timed out closing case {handle.control_number}: {e}") from e

    log(
        "case_closed",
        controlNumber=handle.control_number,
        continueClicks=clicks,
        recoveryAttempts=recoveries,
    )
    return {
        "action": "close",
        "responseCode": RESPONSE_CODE_LABEL,
        "continueClicks": clicks,
        "recoveryAttempts": recoveries,
        "closedAt": now_iso(),
    }


def escalate(categorization: Categorization) -> Dict[str, Any]:
    """No portal mutation; the indicator text travels to tracker and store."""
    return {
        "action": "escalate",
        "indicatorDetails": categorization.indicator_details,
        "matchedReason": categorization.matched_reason,
    }
