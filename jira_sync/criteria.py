"""Acceptance criteria extraction from flattened story descriptions.

This is a best-effort heuristic, not a parser. Criteria are taken from the lines
following an "Acceptance Criteria" heading until the next known section label.
A cleaned line counts as a criterion if it reads like a Gherkin step or is
longer than 10 characters, so long prose under the heading is kept too and
oddly formatted tickets may lose or gain lines.
"""

import re

_SECTION_START = "acceptance criteria"
_SECTION_END = ("description:", "notes:", "background:")
_BULLET = re.compile(r"^[•\-*0-9.)\]]+\s*")
_STEP = re.compile(r"^(given|when|then|and)\s", re.IGNORECASE)
_MIN_FREEFORM_LENGTH = 10


def clean_line(line: str) -> str:
    """Strip surrounding whitespace and a leading bullet or numbering prefix."""
    return _BULLET.sub("", line.strip())


def is_criterion(line: str) -> bool:
    return bool(_STEP.match(line)) or len(line) > _MIN_FREEFORM_LENGTH


def extract_acceptance_criteria(description: str | None) -> list[str]:
    if not description or not description.strip():
        return []

    criteria: list[str] = []
    inside_section = False
    for line in description.splitlines():
        lowered = line.strip().lower()
        if _SECTION_START in lowered:
            inside_section = True
            continue
        if not inside_section:
            continue
        if lowered.startswith(_SECTION_END):
            break
        if not lowered:
            continue
        cleaned = clean_line(line)
        if is_criterion(cleaned):
            criteria.append(cleaned)
    return criteria
