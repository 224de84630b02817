"""
GPA calculation engine.

Computes, from a collection of course results:
  - Session GPA per (academic year, semester)
  - Level GPA per course level (LEVEL_100 … LEVEL_500)
  - Cumulative GPA over every row
  - Progression verdict (current / next level, graduation eligibility)
  - Academic standing from a CGPA band table

Every average is credit weighted:
  GPA = Σ(point_for(grade) × credit_unit) / Σ credit_unit,  0 when no credits.

The engine is pure. It does no I/O, never mutates its input and never
raises on bad grade data. Callers filter rows to the approval status they
trust (student-facing views use SENATE_APPROVED only) and pass the
thresholds in as a GradingPolicy.
"""
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Tuple

from academics.utils.grade_scale import GRADE_SCALE, WEAK_PASS, is_pass, point_for

LEVELS = ("LEVEL_100", "LEVEL_200", "LEVEL_300", "LEVEL_400", "LEVEL_500")
TERMINAL_LEVEL = LEVELS[-1]
SEMESTER_ORDER = {"FIRST": 0, "SECOND": 1}
TREND_BAND = 0.1


# ============================================================
# INPUT / OUTPUT TYPES
# ============================================================

@dataclass(frozen=True)
class CourseResultRow:
    grade: Optional[str]
    credit_unit: int
    academic_year: str
    semester: str
    level: str
    course_code: str = ""
    status: str = ""


@dataclass(frozen=True)
class GradingPolicy:
    graduation_min_credits: int = 120
    graduation_min_cgpa: float = 1.0
    credits_per_level: int = 24
    standing_bands: Tuple[Tuple[float, str], ...] = (
        (4.5, "First Class"),
        (3.5, "Second Class Upper"),
        (2.4, "Second Class Lower"),
        (1.5, "Third Class"),
        (1.0, "Pass"),
        (0.0, "Fail"),
    )


@dataclass(frozen=True)
class SessionGPA:
    academic_year: str
    semester: str
    gpa: float
    credits: int
    grade_points: float
    rows: Tuple[CourseResultRow, ...]


@dataclass(frozen=True)
class LevelGPA:
    level: str
    gpa: float
    credits: int
    grade_points: float
    sessions: Tuple[str, ...]
    rows: Tuple[CourseResultRow, ...]


@dataclass(frozen=True)
class Progression:
    current_level: str
    next_level: Optional[str]
    can_graduate: bool
    credits_to_next_level: int
    required_credits: int
    remaining_credits: int
    min_cgpa_required: float


@dataclass(frozen=True)
class AcademicStanding:
    label: str
    min_cgpa: float


@dataclass(frozen=True)
class GradeStatistics:
    total_courses: int
    passed_courses: int
    weak_pass_courses: int
    failed_courses: int
    pass_rate: int
    grade_distribution: Tuple[Tuple[str, int], ...]


@dataclass(frozen=True)
class GPAReport:
    cgpa: float
    total_credits: int
    total_grade_points: float
    sessions: Tuple[SessionGPA, ...]
    levels: Tuple[LevelGPA, ...]
    progression: Progression
    standing: AcademicStanding
    statistics: GradeStatistics

    def to_dict(self):
        """Plain dict for JSON consumers (transcript, dashboards)."""
        data = asdict(self)
        data["statistics"]["grade_distribution"] = dict(
            self.statistics.grade_distribution
        )
        return data


# ============================================================
# HELPERS
# ============================================================

def _row_sort_key(row):
    return (
        row.academic_year,
        SEMESTER_ORDER.get(row.semester, len(SEMESTER_ORDER)),
        row.semester,
        _level_rank(row.level),
        row.level,
        row.course_code,
        row.grade or "",
        row.credit_unit,
        row.status,
    )


def _level_rank(level):
    try:
        return LEVELS.index(level)
    except ValueError:
        return len(LEVELS)


def _weighted(rows):
    """Return (credits, grade_points, unrounded gpa) for a group of rows."""
    credits = sum(r.credit_unit for r in rows)
    points = sum(point_for(r.grade) * r.credit_unit for r in rows)
    gpa = points / credits if credits > 0 else 0.0
    return credits, points, gpa


def _session_key(row):
    return f"{row.academic_year}-{row.semester}"


def _session_gpas(rows):
    groups = OrderedDict()
    for row in rows:
        groups.setdefault((row.academic_year, row.semester), []).append(row)

    sessions = []
    for (year, semester), members in groups.items():
        credits, points, gpa = _weighted(members)
        sessions.append(SessionGPA(year, semester, round(gpa, 2), credits, points, tuple(members)))
    return tuple(sessions)


def _level_gpas(rows):
    groups = {}
    for row in rows:
        groups.setdefault(row.level, []).append(row)

    levels = []
    for level in sorted(groups, key=lambda lvl: (_level_rank(lvl), lvl)):
        members = groups[level]
        credits, points, gpa = _weighted(members)
        sessions = tuple(OrderedDict.fromkeys(_session_key(r) for r in members))
        levels.append(LevelGPA(level, round(gpa, 2), credits, points, sessions, tuple(members)))
    return tuple(levels)


def _progression(rows, total_credits, cgpa, policy):
    known = [r.level for r in rows if r.level in LEVELS]
    current = max(known, key=_level_rank) if known else LEVELS[0]
    idx = LEVELS.index(current)
    next_level = LEVELS[idx + 1] if idx < len(LEVELS) - 1 else None

    level_credits = sum(r.credit_unit for r in rows if r.level == current)
    can_graduate = (
        current == TERMINAL_LEVEL
        and total_credits >= policy.graduation_min_credits
        and cgpa >= policy.graduation_min_cgpa
    )
    return Progression(
        current_level=current,
        next_level=next_level,
        can_graduate=can_graduate,
        credits_to_next_level=max(0, policy.credits_per_level - level_credits),
        required_credits=policy.graduation_min_credits,
        remaining_credits=max(0, policy.graduation_min_credits - total_credits),
        min_cgpa_required=policy.graduation_min_cgpa,
    )


def academic_standing(cgpa, bands) -> AcademicStanding:
    """First band (highest threshold first) whose minimum the CGPA meets."""
    ordered = sorted(bands, key=lambda band: band[0], reverse=True)
    if not ordered:
        return AcademicStanding("Unclassified", 0.0)
    for low, label in ordered:
        if cgpa >= low:
            return AcademicStanding(label, low)
    low, label = ordered[-1]
    return AcademicStanding(label, low)


def _statistics(rows):
    distribution = OrderedDict((g, 0) for g in GRADE_SCALE)
    passed = weak = failed = 0
    for row in rows:
        grade = (row.grade or "").strip().upper()
        if grade not in GRADE_SCALE:
            continue
        distribution[grade] += 1
        if is_pass(grade):
            passed += 1
        elif grade == WEAK_PASS:
            weak += 1
        else:
            failed += 1

    total = len(rows)
    pass_rate = round(passed / total * 100) if total else 0
    return GradeStatistics(total, passed, weak, failed, pass_rate, tuple(distribution.items()))


# ============================================================
# PUBLIC API
# ============================================================

def compute(rows: Iterable[CourseResultRow], policy: Optional[GradingPolicy] = None) -> GPAReport:
    """Build the full GPA report for one student's rows."""
    policy = policy or GradingPolicy()
    ordered = sorted(rows, key=_row_sort_key)

    # Verdicts compare the unrounded CGPA; only the reported value is rounded.
    total_credits, total_points, cgpa = _weighted(ordered)
    return GPAReport(
        cgpa=round(cgpa, 2),
        total_credits=total_credits,
        total_grade_points=total_points,
        sessions=_session_gpas(ordered),
        levels=_level_gpas(ordered),
        progression=_progression(ordered, total_credits, cgpa, policy),
        standing=academic_standing(cgpa, policy.standing_bands),
        statistics=_statistics(ordered),
    )


def gpa_trend(sessions):
    """
    Compare first and last session GPA.
    Returns {"trend": improving|declining|stable, "change": float, "sessions": n}.
    """
    if len(sessions) < 2:
        return {"trend": "stable", "change": 0.0, "sessions": len(sessions)}

    change = round(sessions[-1].gpa - sessions[0].gpa, 2)
    trend = "stable"
    if change > TREND_BAND:
        trend = "improving"
    elif change < -TREND_BAND:
        trend = "declining"
    return {"trend": trend, "change": change, "sessions": len(sessions)}


def can_proceed(level_gpa: LevelGPA, minimum: float = 1.5) -> bool:
    return level_gpa.gpa >= minimum


def rows_from_results(results):
    """Flatten Result model instances (with course loaded) into engine rows."""
    return [
        CourseResultRow(
            grade=r.grade,
            credit_unit=r.course.credit_unit,
            academic_year=r.academic_year,
            semester=r.semester,
            level=r.course.level,
            course_code=r.course.code,
            status=r.status,
        )
        for r in results
    ]
