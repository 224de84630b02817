"""
Course registration approval.

    PENDING ──approve──▶ DEPARTMENT_APPROVED   (enrollments created)
            └─reject───▶ DEPARTMENT_REJECTED

Both outcomes are final. Enrollment creation is idempotent: `enroll`
checks for an existing row first and the (student, course, academic_year,
semester) unique constraint backs that check against concurrent writers.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from academics.models import ApprovalLevel, CourseRegistration, Enrollment, RegistrationStatus
from academics.utils.batch import BatchCoordinator, unique_ids
from academics.utils.errors import Conflict, InvalidState, Unauthorized
from academics.utils.notify import ApprovalEvent, notify_on_commit
from academics.utils.rbac import authorize_registration
from academics.utils.audit import log_action

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"

OUTCOMES = {
    APPROVE: RegistrationStatus.DEPARTMENT_APPROVED,
    REJECT: RegistrationStatus.DEPARTMENT_REJECTED,
}


# ──────────────────────────────────────────────────────────────
#  ENROLLMENTS
# ──────────────────────────────────────────────────────────────

def enroll(student, course, academic_year, semester, registration=None):
    """Create one enrollment; raises Conflict if it already exists."""
    lookup = dict(
        student=student, course=course,
        academic_year=academic_year, semester=semester,
    )
    if Enrollment.objects.filter(**lookup).exists():
        raise Conflict(
            f"{student.matric_number} already enrolled in {course.code} "
            f"for {academic_year} {semester}"
        )
    try:
        with transaction.atomic():
            return Enrollment.objects.create(registration=registration, is_active=True, **lookup)
    except IntegrityError:
        raise Conflict(f"Concurrent enrollment of {student.matric_number} in {course.code}")


def materialize_enrollments(registration):
    """Enroll the student in every selected course; existing rows are left alone."""
    created = []
    for course in registration.selected_courses.all():
        try:
            created.append(enroll(
                registration.student, course,
                registration.academic_year, registration.semester,
                registration=registration,
            ))
        except Conflict:
            logger.debug("enrollment exists: registration=%s course=%s", registration.pk, course.code)
    return created


def withdraw(enrollment):
    """Soft-withdraw; the row is kept."""
    enrollment.is_active = False
    enrollment.save(update_fields=["is_active"])
    return enrollment


# ──────────────────────────────────────────────────────────────
#  COURSE SELECTION
# ──────────────────────────────────────────────────────────────

def select_courses(student, period, courses):
    """
    Add courses to the student's registration for `period`, creating the
    registration on first selection. Only a PENDING registration can change.
    """
    with transaction.atomic():
        registration, created = CourseRegistration.objects.select_for_update().get_or_create(
            student=student,
            academic_year=period.academic_year,
            semester=period.semester,
        )
        if registration.status != RegistrationStatus.PENDING:
            raise Conflict(
                f"Registration {registration.pk} is already {registration.status}"
            )
        registration.selected_courses.add(*courses)

    if created:
        logger.info("registration %s opened for %s", registration.pk, student.matric_number)
    return registration


def credit_summary(registration):
    """Total credits and credits per semester of the selected courses."""
    courses = registration.selected_courses.all()
    total = courses.aggregate(total=Sum("credit_unit"))["total"] or 0
    by_semester = {
        row["semester"]: row["credits"]
        for row in courses.values("semester").annotate(credits=Sum("credit_unit"))
    }
    return {"total_credits": total, "by_semester": by_semester}


def registration_statistics(registrations):
    counts = {status: 0 for status in RegistrationStatus.values}
    for reg in registrations:
        counts[reg.status] = counts.get(reg.status, 0) + 1
    return {
        "total": sum(counts.values()),
        "pending": counts[RegistrationStatus.PENDING],
        "approved": counts[RegistrationStatus.DEPARTMENT_APPROVED],
        "rejected": counts[RegistrationStatus.DEPARTMENT_REJECTED],
    }


# ──────────────────────────────────────────────────────────────
#  MACHINE
# ──────────────────────────────────────────────────────────────

class RegistrationApprovalMachine:

    def __init__(self):
        self.coordinator = BatchCoordinator(
            CourseRegistration, label="registration",
            select_related=("student__department",),
        )

    def check(self, reviewer, action, registration):
        if action not in OUTCOMES:
            raise InvalidState(f"Unknown action {action!r}")
        authorize_registration(reviewer, registration)
        if registration.status != RegistrationStatus.PENDING:
            raise InvalidState(
                f"Registration {registration.pk} has already been reviewed ({registration.status})"
            )

    def apply(self, reviewer, action, comments, registration):
        registration.status = OUTCOMES[action]
        registration.reviewed_by_id = reviewer.id
        registration.reviewed_at = timezone.now()
        registration.comments = comments or None
        registration.save(update_fields=["status", "reviewed_by", "reviewed_at", "comments"])

        if action == APPROVE:
            materialize_enrollments(registration)

        notify_on_commit(
            registration.student,
            ApprovalEvent("registration", registration.pk, registration.status, comments or None),
        )
        log_action(
            reviewer.id, action.upper(), "CourseRegistration", registration.pk,
            comments or "",
        )
        return registration

    def decide(self, registration_id, action, reviewer, comments=None):
        """Decide one PENDING registration."""
        updated = self.coordinator.run(
            [registration_id],
            check=lambda r: self.check(reviewer, action, r),
            apply=lambda r: self.apply(reviewer, action, comments, r),
        )
        return updated[0]

    def decide_all(self, registration_ids, action, reviewer, comments=None):
        """All-or-nothing: every registration must be decidable."""
        return self.coordinator.run(
            registration_ids,
            check=lambda r: self.check(reviewer, action, r),
            apply=lambda r: self.apply(reviewer, action, comments, r),
        )

    def decide_many(self, registration_ids, action, reviewer, comments=None):
        """
        Decide every registration that can be decided, skipping the rest
        (missing, already reviewed, outside the reviewer's department).
        Returns the number actually transitioned.
        """
        if action not in OUTCOMES:
            raise InvalidState(f"Unknown action {action!r}")
        if reviewer.level != ApprovalLevel.DEPARTMENT:
            raise Unauthorized(f"{reviewer.level} actor {reviewer.id} cannot review registrations")

        count = 0
        with transaction.atomic():
            records, missing = self.coordinator.lock(unique_ids(registration_ids))
            for registration in records:
                try:
                    self.check(reviewer, action, registration)
                except (InvalidState, Unauthorized) as exc:
                    logger.info("skipping registration %s: %s", registration.pk, exc)
                    continue
                self.apply(reviewer, action, comments, registration)
                count += 1

        logger.info(
            "%s %d of %d registration(s) (%d not found)",
            action, count, len(registration_ids), len(missing),
        )
        return count
