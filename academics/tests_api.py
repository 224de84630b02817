import json
from io import StringIO

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import Client, TestCase, override_settings
from django.urls import reverse

from .models import (
    AcademicYear,
    CourseRegistration,
    Enrollment,
    ProgressionConfig,
    ProgressionConfigHistory,
    RegistrationStatus,
    ResultStatus,
    Student,
    UserProfile,
)
from . import services
from .tests import AcademicsFixtures


class ApiTestBase(AcademicsFixtures, TestCase):

    def setUp(self):
        super().setUp()
        AcademicYear.objects.create(name="2024/2025", is_active=True, current_semester="FIRST")
        self.client = Client()

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")


class ResultApprovalApiTests(ApiTestBase):

    def test_login_required(self):
        resp = self.client.get(reverse("result_approval"))
        self.assertEqual(resp.status_code, 302)

    def test_students_cannot_approve(self):
        self.client.force_login(self.student_user)
        resp = self.client.get(reverse("result_approval"))
        self.assertEqual(resp.status_code, 403)

    def test_list_is_scoped_to_actor(self):
        self.make_result()
        self.make_result(student=self.other_student)
        self.client.force_login(self.dept_user)

        resp = self.client.get(reverse("result_approval"), {"status": "ALL"})

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(len(data["results"]), 1)
        self.assertEqual(data["statistics"]["pending"], 1)
        self.assertEqual(data["adminInfo"]["level"], "DEPARTMENT")

    def test_approve(self):
        r = self.make_result()
        self.client.force_login(self.dept_user)

        resp = self.post_json(reverse("result_approval"), {"resultIds": [r.pk], "action": "approve"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["updatedResults"][0]["status"], ResultStatus.DEPARTMENT_APPROVED)
        self.assertEqual(resp.json()["message"], "1 result(s) approved successfully.")

    def test_reject_message(self):
        r = self.make_result()
        self.client.force_login(self.dept_user)

        resp = self.post_json(reverse("result_approval"), {"resultIds": [r.pk], "action": "reject"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "1 result(s) rejected successfully.")

    def test_mixed_batch_returns_conflict_with_failures(self):
        r1 = self.make_result()
        r2 = self.make_result(ResultStatus.SENATE_APPROVED, course=self.course2)
        self.client.force_login(self.dept_user)

        resp = self.post_json(reverse("result_approval"), {"resultIds": [r1.pk, r2.pk], "action": "approve"})

        self.assertEqual(resp.status_code, 409)
        body = resp.json()
        self.assertEqual(body["error"], "InvalidState")
        self.assertIn(str(r2.pk), body["failures"])

    def test_missing_ids_return_404(self):
        self.client.force_login(self.dept_user)
        resp = self.post_json(reverse("result_approval"), {"resultIds": [424242], "action": "approve"})
        self.assertEqual(resp.status_code, 404)

    def test_out_of_scope_returns_403(self):
        r = self.make_result()
        self.client.force_login(self.other_dept_user)
        resp = self.post_json(reverse("result_approval"), {"resultIds": [r.pk], "action": "approve"})
        self.assertEqual(resp.status_code, 403)

    def test_bad_input_returns_400(self):
        self.client.force_login(self.dept_user)
        resp = self.post_json(reverse("result_approval"), {"resultIds": [], "action": "approve"})
        self.assertEqual(resp.status_code, 400)
        resp = self.post_json(reverse("result_approval"), {"resultIds": [1], "action": "publish"})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("action", resp.json()["errors"])


class SubmitResultApiTests(ApiTestBase):

    def test_lecturer_submits_for_active_period(self):
        self.client.force_login(self.lecturer)
        resp = self.post_json(reverse("submit_result"), {
            "studentId": self.student.pk, "courseId": self.course.pk,
            "caScore": 35, "examScore": 40,
        })
        self.assertEqual(resp.status_code, 200)
        result = resp.json()["result"]
        self.assertEqual(result["academicYear"], "2024/2025")
        self.assertEqual(result["grade"], "A")

    def test_invalid_scores(self):
        self.client.force_login(self.lecturer)
        resp = self.post_json(reverse("submit_result"), {
            "studentId": self.student.pk, "courseId": self.course.pk,
            "caScore": 50, "examScore": 40,
        })
        self.assertEqual(resp.status_code, 400)
        self.assertIn("ca_score", resp.json()["errors"])

    def test_admins_cannot_submit(self):
        self.client.force_login(self.dept_user)
        resp = self.post_json(reverse("submit_result"), {})
        self.assertEqual(resp.status_code, 403)


class RegistrationApiTests(ApiTestBase):

    def setUp(self):
        super().setUp()
        self.reg = CourseRegistration.objects.create(
            student=self.student, academic_year="2024/2025", semester="FIRST",
        )
        self.reg.selected_courses.set([self.course, self.course3])

    def test_list_includes_credit_totals(self):
        self.client.force_login(self.dept_user)
        resp = self.client.get(reverse("registrations"))
        self.assertEqual(resp.status_code, 200)
        reg = resp.json()["registrations"][0]
        self.assertEqual(reg["total_credits"], 6)
        self.assertEqual(sorted(reg["courses"]), ["CPT111", "CPT122"])

    def test_list_includes_status_counts(self):
        other = Student.objects.create(matric_number="2020/1/002CP", name="Chidi Eze", department=self.dept)
        CourseRegistration.objects.create(
            student=other, academic_year="2024/2025", semester="FIRST",
            status=RegistrationStatus.DEPARTMENT_APPROVED,
        )
        self.client.force_login(self.dept_user)

        stats = self.client.get(reverse("registrations")).json()["statistics"]

        self.assertEqual(stats, {"total": 2, "pending": 1, "approved": 1, "rejected": 0})

    def test_decide_single(self):
        self.client.force_login(self.dept_user)
        resp = self.post_json(reverse("decide_registrations"), {"registrationId": self.reg.pk, "action": "approve"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], RegistrationStatus.DEPARTMENT_APPROVED)
        self.assertEqual(Enrollment.objects.filter(student=self.student).count(), 2)

        resp = self.post_json(reverse("decide_registrations"), {"registrationId": self.reg.pk, "action": "approve"})
        self.assertEqual(resp.status_code, 409)

    def test_decide_batch(self):
        self.client.force_login(self.dept_user)
        resp = self.post_json(reverse("decide_registrations"), {
            "registrationIds": [self.reg.pk, 424242], "action": "reject", "comments": "Clash",
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"updatedCount": 1, "action": "reject"})

    def test_school_admin_cannot_review(self):
        self.client.force_login(self.school_user)
        resp = self.post_json(reverse("decide_registrations"), {"registrationId": self.reg.pk, "action": "approve"})
        self.assertEqual(resp.status_code, 403)


class StudentApiTests(ApiTestBase):

    def test_results_follow_visibility_policy(self):
        shown = self.make_result(ResultStatus.SENATE_APPROVED)
        self.make_result(ResultStatus.PENDING, course=self.course2)
        prior = self.make_result(ResultStatus.DEPARTMENT_APPROVED, academic_year="2023/2024", semester="SECOND")
        self.client.force_login(self.student_user)
        url = reverse("student_results", args=[self.student.pk])

        ids = [r["id"] for r in self.client.get(url).json()["results"]]
        self.assertEqual(ids, [shown.pk])

        with override_settings(ACADEMICS_PRIOR_PERIOD_VISIBLE_STATUSES=None):
            ids = [r["id"] for r in self.client.get(url).json()["results"]]
        self.assertEqual(ids, [shown.pk, prior.pk])

    def test_student_cannot_view_another_student(self):
        self.client.force_login(self.student_user)
        resp = self.client.get(reverse("student_gpa", args=[self.other_student.pk]))
        self.assertEqual(resp.status_code, 403)

    def test_gpa_uses_senate_approved_results_only(self):
        self.make_result(ResultStatus.SENATE_APPROVED)
        pending = self.make_result(course=self.course2)
        pending.grade = "F"
        pending.save()
        self.client.force_login(self.dept_user)

        resp = self.client.get(reverse("student_gpa", args=[self.student.pk]))

        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["cgpa"], 5.0)
        self.assertEqual(data["total_credits"], 3)
        self.assertEqual(data["standing"]["label"], "First Class")
        self.assertEqual(data["trend"]["trend"], "stable")

    def test_unknown_student_returns_404(self):
        self.client.force_login(self.senate_user)
        resp = self.client.get(reverse("student_gpa", args=[424242]))
        self.assertEqual(resp.status_code, 404)


class ProgressionConfigTests(AcademicsFixtures, TestCase):

    def test_update_writes_versioned_history(self):
        services.update_progression_config(self.senate_user, graduation_min_cgpa=1.5)
        cfg = services.update_progression_config(self.senate_user, credits_per_level=30)

        self.assertEqual(ProgressionConfig.objects.count(), 1)
        self.assertEqual(cfg.graduation_min_cgpa, 1.5)
        versions = list(ProgressionConfigHistory.objects.order_by("version").values_list("version", flat=True))
        self.assertEqual(versions, [1, 2])
        first = ProgressionConfigHistory.objects.get(version=1)
        self.assertEqual(first.changes["graduation_min_cgpa"], {"from": 1.0, "to": 1.5})
        self.assertEqual(first.changed_by, "senate_admin")

    def test_unknown_setting_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.update_progression_config(self.senate_user, pass_mark=40)
        self.assertFalse(ProgressionConfigHistory.objects.exists())

    def test_compute_gpa_uses_stored_bands(self):
        services.update_progression_config(self.senate_user, standing_bands=[[3.0, "Good"], [0.0, "Weak"]])
        self.make_result(ResultStatus.SENATE_APPROVED)
        report = services.compute_gpa(self.student.pk, services.student_rows(self.student))
        self.assertEqual(report.standing.label, "Good")


class ManagementCommandTests(TestCase):

    def test_seed_progression_config_activates_year(self):
        AcademicYear.objects.create(name="2023/2024", is_active=True)
        call_command("seed_progression_config", "--academic-year", "2024/2025", "--semester", "SECOND", stdout=StringIO())

        self.assertEqual(ProgressionConfig.objects.count(), 1)
        period = AcademicYear.current_period()
        self.assertEqual(tuple(period), ("2024/2025", "SECOND"))

        call_command("seed_progression_config", stdout=StringIO())
        self.assertEqual(ProgressionConfig.objects.count(), 1)

    def test_seed_admins(self):
        from .models import Department, School

        school = School.objects.create(name="School of ICT", code="SICT")
        Department.objects.create(name="Computer Science", code="CPT", school=school)
        call_command("seed_admins", stdout=StringIO())
        call_command("seed_admins", stdout=StringIO())

        self.assertEqual(User.objects.count(), 4)
        self.assertEqual(UserProfile.objects.get(user__username="senate_admin").role, "SENATE_ADMIN")


class AdminLockTests(ApiTestBase):

    def setUp(self):
        super().setUp()
        self.superuser = User.objects.create_superuser("root", "root@example.com", "pass")
        self.reg = CourseRegistration.objects.create(
            student=self.student, academic_year="2024/2025", semester="FIRST",
        )
        self.reg.selected_courses.set([self.course])
        self.client.force_login(self.superuser)

    def test_registration_status_cannot_be_set_in_admin(self):
        url = reverse("admin:academics_courseregistration_change", args=[self.reg.pk])
        resp = self.client.post(url, {
            "student": self.student.pk,
            "academic_year": "2024/2025",
            "semester": "FIRST",
            "selected_courses": [self.course.pk],
            "status": RegistrationStatus.DEPARTMENT_APPROVED,
            "comments": "approved from admin",
        })

        self.assertEqual(resp.status_code, 302)
        self.reg.refresh_from_db()
        self.assertEqual(self.reg.status, RegistrationStatus.PENDING)
        self.assertIsNone(self.reg.comments)
        self.assertFalse(Enrollment.objects.exists())

    def test_enrollments_cannot_be_added_in_admin(self):
        resp = self.client.get(reverse("admin:academics_enrollment_add"))
        self.assertEqual(resp.status_code, 403)

    def test_only_is_active_is_editable_on_enrollment(self):
        from django.contrib import admin
        from django.test import RequestFactory

        from .utils.registration_approval import enroll

        enrollment = enroll(self.student, self.course, "2024/2025", "FIRST", registration=self.reg)
        request = RequestFactory().get("/")
        request.user = self.superuser
        form_class = admin.site._registry[Enrollment].get_form(request, enrollment)
        self.assertEqual(list(form_class.base_fields), ["is_active"])
