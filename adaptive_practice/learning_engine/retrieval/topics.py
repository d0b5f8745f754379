"""
Topic translation and grade-leak guard tables.

Callers may name a topic by internal slug ("linear-equations") or directly by
its Hebrew curriculum label. The curated bank is keyed by Hebrew labels, so
slugs are translated before querying it.
"""

import re
from typing import Optional

# Slug -> ordered Hebrew curriculum labels
TOPIC_MAPPING: dict[str, list[str]] = {
    "linear-equations": ["אלגברה", "משוואות לינאריות", "משוואות"],
    "multi-step-equations": ["אלגברה", "משוואות"],
    "inequalities": ["אי-שוויונות", "משוואות ואי-שוויונות"],
    "systems-of-equations": ["אלגברה", "מערכות משוואות"],
    "proportions-ratios": ["יחסים ופרופורציות", "פרופורציה", "אחוזים"],
    "exponents": ["חזקות", "חזקות ושורשים"],
    "polynomials": ["אלגברה", "פולינומים"],
    "functions": ["פונקציות", "כללי"],
    "linear-functions": ["פונקציות לינאריות", "פונקציות"],
    "similarity-congruence": ["גיאומטריה", "דמיון"],
    "pythagorean-theorem": ["גיאומטריה", "משפט פיתגורס", "גאומטריה"],
    "volume-surface-area": ["נפח", "מדידה", "גיאומטריה"],
    "data-analysis": ["סטטיסטיקה", "ניתוח נתונים"],
    "probability": ["הסתברות"],
}

# Hebrew label fragment -> related labels added to the search
RELATED_LABELS: list[tuple[tuple[str, ...], tuple[str, ...]]] = [
    (("משוואות",), ("אלגברה", "משוואות")),
    (("גיאומטריה", "גאומטריה"), ("גיאומטריה", "גאומטריה")),
    (("פונקציות",), ("פונקציות", "פונקציות לינאריות")),
]

# Keywords reserved for a minimum grade. Text containing any of them is never
# shown to a student below that grade, whatever the stored grade label says.
GRADE_RESERVED_KEYWORDS: dict[int, tuple[str, ...]] = {
    12: ("נגזרת", "אינטגרל", "חשבון דיפרנציאלי", "dy/dx", "לימיט", "גבול"),
    11: ("לוגריתם", "אקספוננט", "טריגונומטריה מתקדמת"),
    10: ("משוואות ריבועיות", "פרבולה", "פונקציה ריבועית"),
}

HEBREW_RE = re.compile(r"[\u0590-\u05FF]")


def is_hebrew(value: Optional[str]) -> bool:
    return bool(value) and HEBREW_RE.search(value) is not None


def _add(labels: list[str], values) -> None:
    for value in values:
        if value and value not in labels:
            labels.append(value)


def resolve_topic_labels(topic: Optional[str], subtopic: Optional[str] = None) -> list[str]:
    """
    Hebrew labels to search the curated bank with.

    Hebrew input is used directly and expanded with related labels; slugs are
    translated through TOPIC_MAPPING, with partial key matching as a last resort.
    """
    labels: list[str] = []

    if is_hebrew(topic):
        _add(labels, [topic, subtopic])
        for fragments, related in RELATED_LABELS:
            if any(fragment in topic for fragment in fragments):
                _add(labels, related)
        return labels

    if topic and topic in TOPIC_MAPPING:
        _add(labels, TOPIC_MAPPING[topic])
    if subtopic and subtopic in TOPIC_MAPPING:
        _add(labels, TOPIC_MAPPING[subtopic])

    if not labels:
        search = (subtopic or topic or "").lower()
        if search:
            for key, values in TOPIC_MAPPING.items():
                if search in key:
                    _add(labels, values)

    return labels


def reserved_keywords_above(grade: int) -> list[str]:
    """Keywords reserved for grades strictly above `grade`."""
    keywords: list[str] = []
    for min_grade, terms in GRADE_RESERVED_KEYWORDS.items():
        if min_grade > grade:
            keywords.extend(terms)
    return keywords


def is_grade_compatible(text: Optional[str], grade: Optional[int]) -> bool:
    """False when text contains a keyword reserved for a higher grade."""
    if not grade or not text:
        return True
    lowered = text.lower()
    return not any(term.lower() in lowered for term in reserved_keywords_above(grade))
