from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from .models import (
    AuditLog,
    Course,
    Department,
    LecturerCourseAssignment,
    Result,
    ResultStatus,
    Role,
    School,
    Student,
    UserProfile,
)
from . import services
from .utils.errors import InvalidState, NotFound, Unauthorized
from .utils.rbac import actor_for_user
from .utils.result_approval import ResultApprovalMachine, approval_statistics, history
from .utils.visibility import AcademicPeriod

PERIOD = AcademicPeriod("2024/2025", "FIRST")

NOTIFIED = []


def recording_notifier(recipient, event):
    NOTIFIED.append((recipient, event))


def make_user(username, role, department=None, school=None):
    user = User.objects.create_user(username, f"{username}@example.com", "pass")
    UserProfile.objects.create(user=user, role=role, department=department, school=school)
    return user


class AcademicsFixtures:
    """Two schools, one department each, admins at every level and a lecturer."""

    def setUp(self):
        NOTIFIED.clear()
        self.school = School.objects.create(name="School of ICT", code="SICT")
        self.dept = Department.objects.create(name="Computer Science", code="CPT", school=self.school)
        self.other_school = School.objects.create(name="School of Engineering", code="SEET")
        self.other_dept = Department.objects.create(name="Civil Engineering", code="CVE", school=self.other_school)

        self.course = Course.objects.create(code="CPT111", title="Introduction to Computing", credit_unit=3, department=self.dept)
        self.course2 = Course.objects.create(code="CPT113", title="Discrete Structures", credit_unit=2, department=self.dept)
        self.course3 = Course.objects.create(code="CPT122", title="Programming I", credit_unit=3,
                                             semester="SECOND", department=self.dept)

        self.student_user = make_user("student1", Role.STUDENT, self.dept, self.school)
        self.student = Student.objects.create(matric_number="2020/1/001CP", name="Ada Obi",
                                              department=self.dept, user=self.student_user)
        self.other_student = Student.objects.create(matric_number="2020/1/900CV", name="Musa Bello",
                                                    department=self.other_dept)

        self.dept_user = make_user("dept_admin", Role.DEPARTMENT_ADMIN, self.dept, self.school)
        self.school_user = make_user("school_admin", Role.SCHOOL_ADMIN, self.dept, self.school)
        self.senate_user = make_user("senate_admin", Role.SENATE_ADMIN)
        self.other_dept_user = make_user("cve_admin", Role.DEPARTMENT_ADMIN, self.other_dept, self.other_school)

        self.dept_actor = actor_for_user(self.dept_user)
        self.school_actor = actor_for_user(self.school_user)
        self.senate_actor = actor_for_user(self.senate_user)
        self.other_dept_actor = actor_for_user(self.other_dept_user)

        self.lecturer = make_user("lecturer1", Role.LECTURER, self.dept, self.school)
        LecturerCourseAssignment.objects.create(lecturer=self.lecturer, course=self.course)

    def make_result(self, status=ResultStatus.PENDING, student=None, course=None,
                    academic_year="2024/2025", semester="FIRST"):
        return Result.objects.create(
            student=student or self.student,
            course=course or self.course,
            academic_year=academic_year,
            semester=semester,
            ca_score=30,
            exam_score=45,
            total_score=75,
            grade="A",
            status=status,
        )


class ResultApprovalTests(AcademicsFixtures, TestCase):

    def setUp(self):
        super().setUp()
        self.machine = ResultApprovalMachine(stage_policy="strict")

    def test_department_reject_resets_to_pending_and_clears_scores(self):
        r = self.make_result()
        self.machine.decide([r.pk], self.dept_actor, "reject", "Recheck the exam script")

        r.refresh_from_db()
        self.assertEqual(r.status, ResultStatus.PENDING)
        self.assertIsNone(r.ca_score)
        self.assertIsNone(r.exam_score)
        self.assertIsNone(r.total_score)
        self.assertIsNone(r.grade)
        entries = history(r)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].level, "DEPARTMENT")
        self.assertEqual(entries[0].status, ResultStatus.PENDING)
        self.assertEqual(entries[0].comments, "Recheck the exam script")
        self.assertEqual(entries[0].approver, self.dept_user)

    def test_senate_reject_is_terminal_and_keeps_scores(self):
        r = self.make_result(ResultStatus.FACULTY_APPROVED)
        self.machine.decide([r.pk], self.senate_actor, "reject")

        r.refresh_from_db()
        self.assertEqual(r.status, ResultStatus.REJECTED)
        self.assertEqual(r.total_score, 75)
        self.assertEqual(r.grade, "A")
        self.assertEqual(r.approvals.count(), 1)

        with self.assertRaises(InvalidState):
            self.machine.decide([r.pk], self.senate_actor, "approve")

    def test_full_approval_chain(self):
        r = self.make_result()
        self.machine.decide([r.pk], self.dept_actor, "approve")
        self.machine.decide([r.pk], self.school_actor, "approve")
        updated = self.machine.decide([r.pk], self.senate_actor, "approve")

        self.assertEqual(updated[0].status, ResultStatus.SENATE_APPROVED)
        self.assertEqual(
            [(e.level, e.status) for e in history(r)],
            [
                ("DEPARTMENT", ResultStatus.DEPARTMENT_APPROVED),
                ("SCHOOL", ResultStatus.FACULTY_APPROVED),
                ("SENATE", ResultStatus.SENATE_APPROVED),
            ],
        )

    def test_school_reject_returns_to_pending(self):
        r = self.make_result(ResultStatus.DEPARTMENT_APPROVED)
        self.machine.decide([r.pk], self.school_actor, "reject", "Wrong CA")
        r.refresh_from_db()
        self.assertEqual(r.status, ResultStatus.PENDING)
        self.assertIsNone(r.grade)

    def test_mixed_batch_is_rejected_as_a_whole(self):
        r1 = self.make_result()
        r2 = self.make_result(ResultStatus.SENATE_APPROVED, course=self.course2)

        with self.assertRaises(InvalidState) as ctx:
            self.machine.decide([r1.pk, r2.pk], self.dept_actor, "approve")

        self.assertEqual(set(ctx.exception.failures), {r2.pk})
        r1.refresh_from_db()
        self.assertEqual(r1.status, ResultStatus.PENDING)
        self.assertEqual(r1.approvals.count(), 0)

    def test_missing_ids_raise_not_found_before_anything_changes(self):
        r1 = self.make_result()
        r2 = self.make_result(ResultStatus.SENATE_APPROVED, course=self.course2)

        with self.assertRaises(NotFound) as ctx:
            self.machine.decide([r1.pk, r2.pk, 999999], self.dept_actor, "approve")

        self.assertEqual(set(ctx.exception.failures), {r2.pk, 999999})
        r1.refresh_from_db()
        self.assertEqual(r1.status, ResultStatus.PENDING)

    def test_empty_batch_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.machine.decide([], self.dept_actor, "approve")

    def test_duplicate_ids_transition_once(self):
        r = self.make_result()
        updated = self.machine.decide([r.pk, r.pk], self.dept_actor, "approve")
        self.assertEqual(len(updated), 1)
        self.assertEqual(r.approvals.count(), 1)

    def test_actor_outside_department_is_unauthorized(self):
        r = self.make_result()
        with self.assertRaises(Unauthorized):
            self.machine.decide([r.pk], self.other_dept_actor, "approve")
        r.refresh_from_db()
        self.assertEqual(r.status, ResultStatus.PENDING)

    def test_school_actor_scope_covers_school_departments(self):
        r = self.make_result(ResultStatus.DEPARTMENT_APPROVED, student=self.other_student)
        with self.assertRaises(Unauthorized):
            self.machine.decide([r.pk], self.school_actor, "approve")

    def test_strict_policy_blocks_out_of_stage_level(self):
        r = self.make_result()
        with self.assertRaises(InvalidState):
            self.machine.decide([r.pk], self.senate_actor, "approve")

    def test_permissive_policy_allows_any_non_terminal_status(self):
        r = self.make_result()
        machine = ResultApprovalMachine(stage_policy="permissive")
        machine.decide([r.pk], self.school_actor, "approve")
        r.refresh_from_db()
        self.assertEqual(r.status, ResultStatus.FACULTY_APPROVED)

        done = self.make_result(ResultStatus.SENATE_APPROVED, course=self.course2)
        with self.assertRaises(InvalidState):
            machine.decide([done.pk], self.senate_actor, "reject")

    @override_settings(ACADEMICS_RESULT_STAGE_POLICY="permissive")
    def test_stage_policy_from_settings(self):
        r = self.make_result()
        ResultApprovalMachine().decide([r.pk], self.senate_actor, "approve")
        r.refresh_from_db()
        self.assertEqual(r.status, ResultStatus.SENATE_APPROVED)

    def test_unknown_action_is_invalid(self):
        r = self.make_result()
        with self.assertRaises(InvalidState):
            self.machine.decide([r.pk], self.dept_actor, "publish")

    @override_settings(ACADEMICS_NOTIFIER="academics.tests.recording_notifier")
    def test_reject_notifies_student_and_lecturers_after_commit(self):
        r = self.make_result()
        with self.captureOnCommitCallbacks(execute=True):
            self.machine.decide([r.pk], self.dept_actor, "reject", "Missing CA")

        recipients = [recipient for recipient, _ in NOTIFIED]
        self.assertIn(self.student, recipients)
        self.assertIn(self.lecturer, recipients)
        event = NOTIFIED[0][1]
        self.assertEqual(event.kind, "result")
        self.assertEqual(event.record_id, r.pk)
        self.assertEqual(event.comments, "Missing CA")

    @override_settings(ACADEMICS_NOTIFIER="academics.tests.recording_notifier")
    def test_failed_batch_notifies_nobody(self):
        r1 = self.make_result()
        r2 = self.make_result(ResultStatus.REJECTED, course=self.course2)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(InvalidState):
                self.machine.decide([r1.pk, r2.pk], self.dept_actor, "approve")
        self.assertEqual(callbacks, [])
        self.assertEqual(NOTIFIED, [])

    def test_decide_results_writes_audit_entry(self):
        r = self.make_result()
        services.decide_results([r.pk], self.dept_actor, "approve", stage_policy="strict")
        log = AuditLog.objects.get(action="APPROVE_RESULTS")
        self.assertEqual(log.entity_id, str(r.pk))
        self.assertEqual(log.user_id, str(self.dept_user.pk))

    def test_approval_statistics(self):
        results = [
            self.make_result(),
            self.make_result(ResultStatus.DEPARTMENT_APPROVED, course=self.course2),
            self.make_result(ResultStatus.SENATE_APPROVED, course=self.course3),
        ]
        stats = approval_statistics(results)
        self.assertEqual(stats["total"], 3)
        self.assertEqual(stats["pending"], 1)
        self.assertEqual(stats["department_approved"], 1)
        self.assertEqual(stats["senate_approved"], 1)
        self.assertEqual(stats["rejected"], 0)


class SubmitResultTests(AcademicsFixtures, TestCase):

    def test_submit_derives_total_and_grade(self):
        r = services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, 28, "35")
        self.assertEqual(r.total_score, 63)
        self.assertEqual(r.grade, "B")
        self.assertEqual(r.status, ResultStatus.PENDING)
        self.assertTrue(AuditLog.objects.filter(action="SUBMIT_RESULT", entity_id=str(r.pk)).exists())

    def test_resubmission_updates_pending_result(self):
        first = services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, 10, 20)
        second = services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, 35, 50)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(Result.objects.count(), 1)
        self.assertEqual(second.grade, "A")

    def test_scores_out_of_range_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, 41, 61)
        self.assertEqual(set(ctx.exception.message_dict), {"ca_score", "exam_score"})

        with self.assertRaises(ValidationError):
            services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, -1, 30)
        with self.assertRaises(ValidationError):
            services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, "abc", 30)
        self.assertFalse(Result.objects.exists())

    def test_unassigned_lecturer_is_unauthorized(self):
        with self.assertRaises(Unauthorized):
            services.submit_result(self.lecturer, self.student.pk, self.course2.pk, PERIOD, 20, 30)

    def test_missing_student_or_course(self):
        with self.assertRaises(NotFound):
            services.submit_result(self.lecturer, 424242, self.course.pk, PERIOD, 20, 30)
        with self.assertRaises(NotFound):
            services.submit_result(self.lecturer, self.student.pk, 424242, PERIOD, 20, 30)

    def test_result_in_approval_cannot_be_overwritten(self):
        r = self.make_result(ResultStatus.DEPARTMENT_APPROVED)
        with self.assertRaises(InvalidState):
            services.submit_result(self.lecturer, self.student.pk, self.course.pk, PERIOD, 10, 10)
        r.refresh_from_db()
        self.assertEqual(r.total_score, 75)
