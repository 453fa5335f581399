from dataclasses import dataclass, field
from typing import Dict, Tuple


def _field_alternatives(name: str, css_class: str) -> Tuple[str, ...]:
    return (f"#{name}", f".{css_class}", f'[data-field="{name}"]')


@dataclass(frozen=True)
class PortalSelectors:
    # Login
    username: str = "#j_username"
    password: str = "#j_password"
    login_submit: str = 'input[type="submit"]'
    otp_input: str = "#oneTimePassword"
    otp_submit: str = 'input[type="submit"]'
    # Any one of these proves an authenticated page
    authenticated_markers: Tuple[str, ...] = (".navbar", "#header")
    authenticated_title_fragment: str = "Home"

    # Case search
    case_type: str = 'select[name="caseType"]'
    case_number: str = 'input[name="caseNumber"]'
    search_submit: str = 'button[type="submit"]'
    case_link: str = 'a.case-id-link, a[href*="case/view"]'
    case_detail_view: str = ".case-details, #caseDetailsForm"

    # Evidence fields, first present alternative wins
    fields: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: {
        "disputeCode1": _field_alternatives("disputeCode1", "dispute-code-1"),
        "disputeCode2": _field_alternatives("disputeCode2", "dispute-code-2"),
        "images": _field_alternatives("images", "images"),
        "fcraRelevantInfo": _field_alternatives("fcraRelevantInfo", "fcra-relevant-info"),
    })

    # Close-as-accurate
    continue_button: str = 'button[type="submit"], input[type="submit"], .continue-button, #continueButton'
    response_code: str = 'select[name="responseCode"], #responseCode, .response-code-select'
    submit_button: str = 'button[type="submit"], input[type="submit"], .submit-button, #submitButton'
    error_marker: str = ".error, .error-message, #errorMessage"
    clear_account_info: str = "#clearAccountInfo, .clear-button"


DEFAULT_SELECTORS = PortalSelectors()
