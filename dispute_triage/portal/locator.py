from dataclasses import dataclass
from typing import Union

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from dispute_triage.core.errors import PortalTimeout
from dispute_triage.observability.logging import log
from dispute_triage.portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from dispute_triage.portal.session import PortalSession
from dispute_triage.settings import settings


@dataclass(frozen=True)
class CaseHandle:
    session: PortalSession
    control_number: str

    @property
    def page(self):
        return self.session.page


@dataclass(frozen=True)
class NotFound:
    control_number: str


def _search_url() -> str:
    return settings.PORTAL_URL.rstrip("/") + settings.PORTAL_CASE_SEARCH_PATH


def find_case(
    session: PortalSession,
    control_number: str,
    selectors: PortalSelectors = DEFAULT_SELECTORS,
) -> Union[CaseHandle, NotFound]:
    """
    Search the portal by case type + control number and open the case.

    NotFound is a normal return value. Portal timeouts raise PortalTimeout.
    """
    page = session.page
    nav_timeout = settings.NAVIGATION_TIMEOUT_MS
    try:
        page.goto(_search_url(), wait_until="networkidle", timeout=nav_timeout)
        page.wait_for_selector(selectors.case_type, timeout=settings.ELEMENT_TIMEOUT_MS)
        page.select_option(selectors.case_type, settings.PORTAL_CASE_TYPE)
        page.fill(selectors.case_number, control_number)
        with page.expect_navigation(wait_until="networkidle", timeout=nav_timeout):
            page.click(selectors.search_submit)

        if not page.query_selector(selectors.case_link):
            log("case_not_found", clientId=session.client_id, controlNumber=control_number)
            return NotFound(control_number)

        with page.expect_navigation(wait_until="networkidle", timeout=nav_timeout):
            page.click(selectors.case_link)
        page.wait_for_selector(selectors.case_detail_view, timeout=settings.ELEMENT_TIMEOUT_MS)
    except PlaywrightTimeoutError as e:
        raise PortalTimeout(f"Timed out locating case {control_number}: {e}") from e

    log("case_opened", clientId=session.client_id, controlNumber=control_number)
    return CaseHandle(session=session, control_number=control_number)
