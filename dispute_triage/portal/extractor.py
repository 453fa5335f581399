from typing import Optional, Sequence

from playwright.sync_api import Error as PlaywrightError

from dispute_triage.core.errors import ExtractionError
from dispute_triage.observability.logging import log
from dispute_triage.portal.locator import CaseHandle
from dispute_triage.portal.selectors import DEFAULT_SELECTORS, PortalSelectors
from dispute_triage.store.models import CaseDetail


def _first_text(page, alternatives: Sequence[str]) -> Optional[str]:
    for selector in alternatives:
        el = page.query_selector(selector)
        if el is not None:
            return (el.text_content() or "").strip()
    return None


def extract(handle: CaseHandle, selectors: PortalSelectors = DEFAULT_SELECTORS) -> CaseDetail:
    """
    Read the evidence fields from an opened case view.

    A field no alternative can locate comes back as None. Only a page that
    is not a case view at all (or breaks mid-read) raises ExtractionError.
    """
    page = handle.page
    try:
        if not page.query_selector(selectors.case_detail_view):
            raise ExtractionError(f"Case view for {handle.control_number} is not loaded")
        values = {name: _first_text(page, alts) for name, alts in selectors.fields.items()}
    except PlaywrightError as e:
        raise ExtractionError(f"Could not read case {handle.control_number}: {e}") from e

    missing = [k for k, v in values.items() if v is None]
    log(
        "case_extracted",
        controlNumber=handle.control_number,
        missingFields=missing,
    )
    return CaseDetail(**values)
