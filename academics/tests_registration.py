from django.test import TestCase, override_settings

from .models import AuditLog, CourseRegistration, Enrollment, RegistrationStatus, Student
from . import services
from .tests import NOTIFIED, PERIOD, AcademicsFixtures
from .utils.errors import Conflict, InvalidState, NotFound, Unauthorized
from .utils.registration_approval import (
    RegistrationApprovalMachine,
    credit_summary,
    enroll,
    materialize_enrollments,
    select_courses,
    withdraw,
)


class RegistrationApprovalTests(AcademicsFixtures, TestCase):

    def setUp(self):
        super().setUp()
        self.machine = RegistrationApprovalMachine()

    def register(self, student=None, courses=None, status=RegistrationStatus.PENDING):
        reg = CourseRegistration.objects.create(
            student=student or self.student,
            academic_year=PERIOD.academic_year,
            semester=PERIOD.semester,
            status=status,
        )
        reg.selected_courses.set(courses if courses is not None else [self.course, self.course2])
        return reg

    def make_student(self, n, department=None):
        return Student.objects.create(
            matric_number=f"2021/1/{n:03d}CP", name=f"Student {n}",
            department=department or self.dept,
        )

    def test_approve_creates_one_enrollment_per_course(self):
        reg = self.register()
        decided = self.machine.decide(reg.pk, "approve", self.dept_actor, "Okay")

        self.assertEqual(decided.status, RegistrationStatus.DEPARTMENT_APPROVED)
        self.assertEqual(decided.reviewed_by_id, self.dept_user.pk)
        self.assertIsNotNone(decided.reviewed_at)
        self.assertEqual(
            set(Enrollment.objects.filter(registration=reg).values_list("course__code", flat=True)),
            {"CPT111", "CPT113"},
        )
        self.assertTrue(AuditLog.objects.filter(entity="CourseRegistration", entity_id=str(reg.pk)).exists())

    def test_second_decision_is_invalid_and_creates_nothing(self):
        reg = self.register()
        self.machine.decide(reg.pk, "approve", self.dept_actor)
        with self.assertRaises(InvalidState):
            self.machine.decide(reg.pk, "approve", self.dept_actor)
        self.assertEqual(Enrollment.objects.filter(student=self.student).count(), 2)

    def test_reject_creates_no_enrollments(self):
        reg = self.register()
        decided = self.machine.decide(reg.pk, "reject", self.dept_actor, "Too many units")
        self.assertEqual(decided.status, RegistrationStatus.DEPARTMENT_REJECTED)
        self.assertEqual(decided.comments, "Too many units")
        self.assertFalse(Enrollment.objects.exists())

    def test_missing_registration(self):
        with self.assertRaises(NotFound):
            self.machine.decide(424242, "approve", self.dept_actor)

    def test_only_department_reviewers_of_the_student(self):
        reg = self.register()
        with self.assertRaises(Unauthorized):
            self.machine.decide(reg.pk, "approve", self.other_dept_actor)
        with self.assertRaises(Unauthorized):
            self.machine.decide(reg.pk, "approve", self.senate_actor)
        reg.refresh_from_db()
        self.assertEqual(reg.status, RegistrationStatus.PENDING)

    def test_materialize_is_idempotent(self):
        reg = self.register()
        first = materialize_enrollments(reg)
        second = materialize_enrollments(reg)
        self.assertEqual(len(first), 2)
        self.assertEqual(second, [])
        self.assertEqual(Enrollment.objects.count(), 2)

    def test_enroll_duplicate_raises_conflict(self):
        enroll(self.student, self.course, *PERIOD)
        with self.assertRaises(Conflict):
            enroll(self.student, self.course, *PERIOD)
        enroll(self.student, self.course, "2025/2026", "FIRST")
        self.assertEqual(Enrollment.objects.count(), 2)

    def test_decide_many_skips_undecidable_records(self):
        pending = self.register()
        done = self.register(self.make_student(2), status=RegistrationStatus.DEPARTMENT_APPROVED)
        foreign = self.register(self.make_student(3, self.other_dept))

        count = self.machine.decide_many(
            [pending.pk, done.pk, foreign.pk, 424242], "approve", self.dept_actor,
        )

        self.assertEqual(count, 1)
        pending.refresh_from_db()
        foreign.refresh_from_db()
        self.assertEqual(pending.status, RegistrationStatus.DEPARTMENT_APPROVED)
        self.assertEqual(foreign.status, RegistrationStatus.PENDING)
        self.assertEqual(Enrollment.objects.filter(registration=done).count(), 0)

    def test_decide_many_requires_department_reviewer(self):
        reg = self.register()
        with self.assertRaises(Unauthorized):
            self.machine.decide_many([reg.pk], "approve", self.school_actor)

    def test_decide_all_is_all_or_nothing(self):
        pending = self.register()
        done = self.register(self.make_student(2), status=RegistrationStatus.DEPARTMENT_REJECTED)

        with self.assertRaises(InvalidState) as ctx:
            self.machine.decide_all([pending.pk, done.pk], "approve", self.dept_actor)

        self.assertEqual(set(ctx.exception.failures), {done.pk})
        pending.refresh_from_db()
        self.assertEqual(pending.status, RegistrationStatus.PENDING)
        self.assertFalse(Enrollment.objects.exists())

    def test_service_accepts_single_id_or_list(self):
        a = self.register()
        b = self.register(self.make_student(2))
        self.assertEqual(services.decide_registration(a.pk, "reject", self.dept_actor).status,
                         RegistrationStatus.DEPARTMENT_REJECTED)
        self.assertEqual(services.decide_registration([a.pk, b.pk], "approve", self.dept_actor), {"count": 1})

    @override_settings(ACADEMICS_NOTIFIER="academics.tests.recording_notifier")
    def test_student_is_notified_after_commit(self):
        reg = self.register()
        with self.captureOnCommitCallbacks(execute=True):
            self.machine.decide(reg.pk, "approve", self.dept_actor)
        self.assertEqual(len(NOTIFIED), 1)
        recipient, event = NOTIFIED[0]
        self.assertEqual(recipient, self.student)
        self.assertEqual((event.kind, event.record_id, event.status),
                         ("registration", reg.pk, RegistrationStatus.DEPARTMENT_APPROVED))


class CourseSelectionTests(AcademicsFixtures, TestCase):

    def test_select_courses_opens_registration(self):
        reg = select_courses(self.student, PERIOD, [self.course])
        again = select_courses(self.student, PERIOD, [self.course2, self.course3])
        self.assertEqual(reg.pk, again.pk)
        self.assertEqual(reg.status, RegistrationStatus.PENDING)
        self.assertEqual(reg.selected_courses.count(), 3)

    def test_decided_registration_cannot_change(self):
        reg = select_courses(self.student, PERIOD, [self.course])
        RegistrationApprovalMachine().decide(reg.pk, "approve", self.dept_actor)
        with self.assertRaises(Conflict):
            select_courses(self.student, PERIOD, [self.course2])
        self.assertEqual(reg.selected_courses.count(), 1)

    def test_credit_summary(self):
        reg = select_courses(self.student, PERIOD, [self.course, self.course2, self.course3])
        summary = credit_summary(reg)
        self.assertEqual(summary["total_credits"], 8)
        self.assertEqual(summary["by_semester"], {"FIRST": 5, "SECOND": 3})

    def test_withdraw_keeps_the_row(self):
        enrollment = enroll(self.student, self.course, *PERIOD)
        withdraw(enrollment)
        enrollment.refresh_from_db()
        self.assertFalse(enrollment.is_active)
        with self.assertRaises(Conflict):
            enroll(self.student, self.course, *PERIOD)
