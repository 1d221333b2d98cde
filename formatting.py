"""
Display helpers shared by the browser and the HTTP service.

Publications are listed as ``"ACRONYM: Title"`` labels and the acronym is
recovered from the label when one is picked.  Paragraph lists may contain
state-difference entries whose ``question`` is a type code rather than a
question; those are shown with a short type name and the selected state.
"""
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

SD_TYPES = {
    "Auditable_Partial": "Audit",
    "Auditable_Full": "Audit",
    "Applicability": "Applicability",
    "ExternalRef": "External",
    "GeneralInfo": "Info",
}
SD_NAMES = frozenset(SD_TYPES.values())

NO_DATA = "No data."


def publication_label(acronym: str, title: str) -> str:
    return f"{acronym}: {title}"


def split_publication_label(label: str) -> Tuple[str, str]:
    """Split a label like ``'CALO: OSHA Auditing: California Occupational'``.

    Only the first colon separates the acronym; titles may contain more.
    """
    acronym, sep, title = label.partition(":")
    if not sep:
        raise ValueError(f"Not a publication label: {label!r}")
    return acronym, title.strip()


def simplify_question(question: Optional[str]) -> Optional[str]:
    return SD_TYPES.get(question, question)


def is_state_difference(question: Optional[str]) -> bool:
    return question in SD_NAMES


def state_path(state: str) -> str:
    """Quote a state name for use as a URL path segment ('New York' -> 'New%20York')."""
    return quote(state, safe="")


def paragraph_row(paragraph: Dict[str, Any], state: str) -> str:
    num = paragraph.get("para_num") or ""
    citation = paragraph.get("citation") or ""
    question = paragraph.get("question")
    if is_state_difference(question):
        return f"{state}-{num}：{citation} ({question})"
    return f"{num}：{citation}"


def _detail(paragraph: Dict[str, Any]) -> str:
    return f"{paragraph.get('para_num') or ''} {paragraph.get('question') or ''}<br><br>{paragraph.get('guide_note') or ''}"


def paragraph_detail(paragraphs: List[Dict[str, Any]], row: Optional[int], state: str) -> str:
    """Return the detail text shown above a paragraph list.

    ``row`` counts from 1 because row 0 is the detail itself; ``None`` or 0
    means nothing was tapped and the first paragraph is shown, skipping a
    leading state-difference entry.
    """
    if not paragraphs:
        return NO_DATA

    if row:
        if row < 0 or row > len(paragraphs):
            raise ValueError(f"Row {row} out of range (1..{len(paragraphs)})")
        paragraph = paragraphs[row - 1]
        if is_state_difference(paragraph.get("question")):
            return f"{state}\n{paragraph.get('guide_note') or ''}"
        return _detail(paragraph)

    first = paragraphs[0]
    if is_state_difference(first.get("question")) and len(paragraphs) > 1:
        first = paragraphs[1]
    return _detail(first)
