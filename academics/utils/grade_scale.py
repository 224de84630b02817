"""
Five-point grading scale.

    A  70-100  5.0  Excellent
    B  60-69   4.0  Very Good
    C  50-59   3.0  Good
    D  45-49   2.0  Satisfactory
    E  40-44   1.0  Fair (weak pass)
    F  <40     0.0  Failure

`point_for` is total: anything it does not recognise is worth 0 points.
"""
from collections import namedtuple

GradeInfo = namedtuple("GradeInfo", "grade points min_score description is_pass")

GRADE_SCALE = {
    "A": GradeInfo("A", 5.0, 70, "Excellent", True),
    "B": GradeInfo("B", 4.0, 60, "Very Good", True),
    "C": GradeInfo("C", 3.0, 50, "Good", True),
    "D": GradeInfo("D", 2.0, 45, "Satisfactory", True),
    "E": GradeInfo("E", 1.0, 40, "Fair", False),
    "F": GradeInfo("F", 0.0, 0, "Failure", False),
}

WEAK_PASS = "E"


def _normalize(grade):
    if grade is None:
        return ""
    return str(grade).strip().upper()


def point_for(grade) -> float:
    """Grade point for a letter grade; unknown or missing grades are 0.0."""
    info = GRADE_SCALE.get(_normalize(grade))
    return info.points if info else 0.0


def grade_for_score(total_score) -> str:
    """Letter grade for a total score out of 100."""
    for info in GRADE_SCALE.values():
        if total_score >= info.min_score:
            return info.grade
    return "F"


def is_pass(grade) -> bool:
    info = GRADE_SCALE.get(_normalize(grade))
    return bool(info and info.is_pass)


def is_valid_grade(grade) -> bool:
    return _normalize(grade) in GRADE_SCALE
