"""
Grade levels offered by the school and the default sections per grade.

Grade names are stored as plain strings ("Kinder 1", "Grade 7") on students,
enrollments, sections and fee templates; this module gives them an order.
"""
from typing import Dict, List, Optional

GRADE_ORDER: List[str] = [
    "Kinder 1",
    "Kinder 2",
    "Grade 1",
    "Grade 2",
    "Grade 3",
    "Grade 4",
    "Grade 5",
    "Grade 6",
    "Grade 7",
    "Grade 8",
    "Grade 9",
    "Grade 10",
    "Grade 11",
    "Grade 12",
]

# Sections created for every new academic year when missing.
SECTION_DEFINITIONS: Dict[str, List[str]] = {
    "Kinder 1": ["Enthusiasm"],
    "Kinder 2": ["Enthusiasm", "Generosity"],
    "Grade 1": ["Obedience"],
    "Grade 2": ["Hospitality"],
    "Grade 3": ["Simplicity"],
    "Grade 4": ["Benevolence"],
    "Grade 5": ["Sincerity"],
    "Grade 6": ["Responsibility"],
    "Grade 7": ["Perseverance"],
    "Grade 8": ["Integrity"],
    "Grade 9": ["Perseverance"],
    "Grade 10": ["Integrity"],
}


def grade_rank(grade_level: Optional[str]) -> int:
    """Position in GRADE_ORDER; unknown grades sort after every known one."""
    try:
        return GRADE_ORDER.index(grade_level)
    except ValueError:
        return len(GRADE_ORDER)


def next_grade_level(grade_level: str) -> str:
    """Suggested grade for the following year. Grade 12 (and unknown grades) stay as they are."""
    rank = grade_rank(grade_level)
    if rank >= len(GRADE_ORDER) - 1:
        return grade_level
    return GRADE_ORDER[rank + 1]
