import logging
import re
from typing import Dict, Sequence

from tender_chat.schemas.table import ColumnRole

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9+]+")
_ABC_CATEGORY = re.compile(r"^([abc]) ?(cat|category)\b")


def normalize_header(header: str) -> str:
    """Lowercase, punctuation to single spaces ('+' kept for 'A+B+C')."""
    return _NON_ALNUM.sub(" ", (header or "").lower()).strip()


def classify_header(header: str) -> ColumnRole:
    """Classify one header. First matching rule wins."""
    text = normalize_header(header)
    compact = text.replace(" ", "")

    # --- Filter roles ---
    if "rc status" in text or "rcstatus" in compact:
        return ColumnRole.RC_STATUS
    if "tender progress" in text or ("progress" in text and "remarks" in text):
        return ColumnRole.TENDER_PROGRESS
    if "status action" in text or "statusaction" in compact:
        return ColumnRole.STATUS_ACTION

    # --- Metric roles ---
    has_edl = "edl" in text
    has_non = "non" in text
    has_total = "total" in text
    if has_edl and not has_non and not has_total:
        return ColumnRole.EDL
    if has_non and has_edl:
        return ColumnRole.NON_EDL
    if has_total and "item" in text:
        return ColumnRole.TOTAL_ITEMS

    abc_match = _ABC_CATEGORY.match(text)
    if abc_match and not any(word in text for word in ("indent", "value", "total")):
        return ColumnRole.for_abc_letter(abc_match.group(1))

    if has_total and ("a+b+c" in compact or "abc" in compact):
        return ColumnRole.TOTAL_ABC

    if any(word in text for word in ("value", "items", "category")):
        return ColumnRole.GENERIC_METRIC
    return ColumnRole.UNCLASSIFIED


def classify(headers: Sequence[str]) -> Dict[str, ColumnRole]:
    """Map every header to its ColumnRole."""
    roles = {header: classify_header(header) for header in headers}
    logger.debug(f"[ColumnSemanticsClassifier] Classified {len(roles)} headers: {[role.value for role in roles.values()]}")
    return roles
