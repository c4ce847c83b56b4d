"""
Student remarks codec.

Remarks are stored in one text column as "<free text>|<label>,<label>": the admin's own
note, then the checkbox labels picked from the remarks catalog. Rows written before the
separator existed hold a bare string, which is read as a label when it is a known one.
"""
from typing import Dict, List, Optional, Tuple

SEPARATOR = "|"

# Default remarks catalog by category; seeded into custom_remarks for each new year.
DEFAULT_REMARK_CATEGORIES: Dict[str, List[str]] = {
    "payment": [
        "Not Paid",
        "Partial Payment",
        "Overdue Payment",
        "Scholarship",
        "Financial Aid",
    ],
    "documents": [
        "Missing Documents",
        "Pending Form 137",
        "Pending Good Moral",
        "Pending PSA",
        "Pending Report Card",
        "Pending Transfer Credentials",
        "Pending SF9",
        "Pending SF10",
    ],
    "behavioral": ["Parent Conference Required"],
    "administrative": [
        "Transfer Student",
        "Returning Student",
        "New Student",
        "Late Enrollment",
        "Section Assignment Pending",
    ],
    "special": ["Special Needs", "Sibling Discount", "Early Bird Discount"],
}

KNOWN_REMARKS = frozenset(label for labels in DEFAULT_REMARK_CATEGORIES.values() for label in labels)


def parse_remarks(remarks: Optional[str]) -> Tuple[str, List[str]]:
    """Split a stored remarks string into (free text, checkbox labels)."""
    if not remarks:
        return "", []
    if SEPARATOR not in remarks:
        if remarks in KNOWN_REMARKS:
            return "", [remarks]
        return remarks, []
    text, _, labels = remarks.partition(SEPARATOR)
    return text.strip(), [v.strip() for v in labels.split(",") if v.strip()]


def encode_remarks(text: Optional[str], labels: Optional[List[str]]) -> str:
    """Inverse of parse_remarks. Empty text and no labels encode to ""."""
    clean_text = (text or "").strip()
    clean_labels = [v.strip() for v in labels or [] if v and v.strip()]
    if not clean_text and not clean_labels:
        return ""
    return f"{clean_text}{SEPARATOR}{','.join(clean_labels)}"


def format_remarks_for_display(remarks: Optional[str]) -> str:
    text, labels = parse_remarks(remarks)
    if not text and not labels:
        return "None"
    parts = []
    if text:
        parts.append(f"(Admin NOTE: {text})")
    if labels:
        parts.append(f"Other Remarks: {', '.join(labels)}")
    return " ".join(parts)
