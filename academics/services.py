"""
Entry points for callers outside the approval core (views, commands,
other apps). Each one is a short transaction-scoped unit of work.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from academics.models import (
    Course,
    ProgressionConfig,
    ProgressionConfigHistory,
    Result,
    ResultStatus,
    Student,
)
from academics.utils import gpa_engine
from academics.utils.audit import log_action
from academics.utils.errors import InvalidState, NotFound
from academics.utils.grade_scale import grade_for_score
from academics.utils.rbac import authorize_lecturer
from academics.utils.registration_approval import RegistrationApprovalMachine
from academics.utils.result_approval import ResultApprovalMachine

logger = logging.getLogger(__name__)

CA_MAX = 40.0
EXAM_MAX = 60.0

CONFIG_FIELDS = (
    "graduation_min_credits",
    "graduation_min_cgpa",
    "credits_per_level",
    "standing_bands",
)


def _get_config():
    """Return the single ProgressionConfig row (create defaults if none)."""
    cfg = ProgressionConfig.objects.first()
    if cfg is None:
        cfg = ProgressionConfig.objects.create()
    return cfg


def _get(model, pk, label):
    try:
        return model.objects.get(pk=pk)
    except model.DoesNotExist:
        raise NotFound(f"{label} {pk} does not exist")


def _clean_scores(ca_score, exam_score):
    """Return (ca, exam) as floats or raise ValidationError."""
    errors = {}
    cleaned = []
    for name, value, limit in (("ca_score", ca_score, CA_MAX), ("exam_score", exam_score, EXAM_MAX)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            errors[name] = "Score must be a number."
            continue
        if value < 0 or value > limit:
            errors[name] = f"Score must be between 0 and {limit:g}."
        cleaned.append(value)
    if errors:
        raise ValidationError(errors)
    return tuple(cleaned)


# ──────────────────────────────────────────────────────────────
#  RESULTS
# ──────────────────────────────────────────────────────────────

def submit_result(lecturer, student_id, course_id, period, ca_score, exam_score):
    """
    Create or update a PENDING result for the lecturer's course.
    A result already moving through approval cannot be overwritten.
    """
    course = _get(Course, course_id, "Course")
    student = _get(Student, student_id, "Student")
    authorize_lecturer(lecturer, course)
    ca_score, exam_score = _clean_scores(ca_score, exam_score)

    total = ca_score + exam_score
    with transaction.atomic():
        result, created = Result.objects.select_for_update().get_or_create(
            student=student,
            course=course,
            academic_year=period.academic_year,
            semester=period.semester,
        )
        if result.status != ResultStatus.PENDING:
            raise InvalidState(
                f"Result {result.pk} is {result.status} and can no longer be edited"
            )
        result.ca_score = ca_score
        result.exam_score = exam_score
        result.total_score = total
        result.grade = grade_for_score(total)
        result.save()

        verb = "created" if created else "updated"
        log_action(lecturer, "SUBMIT_RESULT", "Result", result.pk,
                   f"{verb} {course.code} for {student.matric_number}: {total:g} ({result.grade})")
    return result


def decide_results(result_ids, actor, action, comments=None, stage_policy=None):
    machine = ResultApprovalMachine(stage_policy=stage_policy)
    updated = machine.decide(result_ids, actor, action, comments)
    ids = ",".join(str(r.pk) for r in updated)
    log_action(actor.id, f"{action.upper()}_RESULTS", "Result", ids[:255], comments or "")
    return updated


# ──────────────────────────────────────────────────────────────
#  REGISTRATIONS
# ──────────────────────────────────────────────────────────────

def decide_registration(registration, action, reviewer, comments=None):
    """
    `registration` is one id (returns the registration) or a list of ids
    (returns {"count": n}, skipping registrations that are not PENDING).
    """
    machine = RegistrationApprovalMachine()
    if isinstance(registration, (list, tuple, set)):
        count = machine.decide_many(list(registration), action, reviewer, comments)
        return {"count": count}
    return machine.decide(registration, action, reviewer, comments)


# ──────────────────────────────────────────────────────────────
#  GPA
# ──────────────────────────────────────────────────────────────

def student_rows(student, statuses=(ResultStatus.SENATE_APPROVED,)):
    results = student.results.select_related("course")
    if statuses is not None:
        results = results.filter(status__in=statuses)
    return gpa_engine.rows_from_results(results)


def compute_gpa(student_id, rows, policy=None):
    """GPA report for already status-filtered rows."""
    policy = policy or _get_config().as_policy()
    report = gpa_engine.compute(rows, policy)
    logger.debug("gpa student=%s cgpa=%.2f credits=%d", student_id, report.cgpa, report.total_credits)
    return report


def update_progression_config(user, **changes):
    unknown = set(changes) - set(CONFIG_FIELDS)
    if unknown:
        raise ValidationError({name: "Unknown setting." for name in sorted(unknown)})

    with transaction.atomic():
        cfg = _get_config()
        before = {name: getattr(cfg, name) for name in changes}
        for name, value in changes.items():
            setattr(cfg, name, value)
        cfg.save()
        version = cfg.histories.count() + 1
        ProgressionConfigHistory.objects.create(
            config=cfg,
            changed_by=getattr(user, "username", str(user)),
            changes={name: {"from": before[name], "to": value} for name, value in changes.items()},
            version=version,
        )
        log_action(user, "UPDATE", "ProgressionConfig", cfg.pk, f"v{version}: {sorted(changes)}")
    return cfg
