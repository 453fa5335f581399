from typing import Callable, List, NamedTuple, Optional

from dispute_triage.store.models import CaseDetail, Categorization


class Indicator(NamedTuple):
    field: str
    reason: str
    matches: Callable[[str], bool]


# ORDER MATTERS: first match wins, so this list is the tie-break policy.
# Predicates only ever see non-null values; a missing field never matches.
NON_FRIVOLOUS_INDICATORS: List[Indicator] = [
    Indicator("disputeCode1", "disputeCode1 contains 103", lambda v: "103" in v),
    Indicator("disputeCode2", "disputeCode2 contains 103", lambda v: "103" in v),
    Indicator("images", "images has a value other than -- or 0", lambda v: v not in ("--", "0")),
    Indicator("fcraRelevantInfo", "fcraRelevantInfo has a value other than --", lambda v: v != "--"),
]


def _field_value(detail: CaseDetail, name: str) -> Optional[str]:
    v = getattr(detail, name, None)
    return v if v else None


def categorize(detail: CaseDetail) -> Categorization:
    """
    Map extracted case fields to a verdict.

    Deterministic and side-effect free. Returns non-frivolous with the first
    matching indicator's reason and "<field>: <value>" details, otherwise
    frivolous with both left as None.
    """
    for ind in NON_FRIVOLOUS_INDICATORS:
        value = _field_value(detail, ind.field)
        if value is not None and ind.matches(value):
            return Categorization(
                is_frivolous=False,
                matched_reason=ind.reason,
                indicator_details=f"{ind.field}: {value}",
                case_detail=detail,
            )
    return Categorization(is_frivolous=True, case_detail=detail)
