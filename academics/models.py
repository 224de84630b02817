from django.db import models
from django.contrib.auth.models import User
from django.utils import timezone


# ============================================================
# ENUMS
# ============================================================

class Role(models.TextChoices):
    STUDENT = "STUDENT", "Student"
    LECTURER = "LECTURER", "Lecturer"
    DEPARTMENT_ADMIN = "DEPARTMENT_ADMIN", "Department Admin"
    SCHOOL_ADMIN = "SCHOOL_ADMIN", "School Admin"
    SENATE_ADMIN = "SENATE_ADMIN", "Senate Admin"


class ApprovalLevel(models.TextChoices):
    DEPARTMENT = "DEPARTMENT", "Department"
    SCHOOL = "SCHOOL", "School (Faculty)"
    SENATE = "SENATE", "Senate"


class SemesterType(models.TextChoices):
    FIRST = "FIRST", "First"
    SECOND = "SECOND", "Second"


class StudentLevel(models.TextChoices):
    LEVEL_100 = "LEVEL_100", "100 Level"
    LEVEL_200 = "LEVEL_200", "200 Level"
    LEVEL_300 = "LEVEL_300", "300 Level"
    LEVEL_400 = "LEVEL_400", "400 Level"
    LEVEL_500 = "LEVEL_500", "500 Level"


class ResultStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    DEPARTMENT_APPROVED = "DEPARTMENT_APPROVED", "Department Approved"
    FACULTY_APPROVED = "FACULTY_APPROVED", "Faculty Approved"
    SENATE_APPROVED = "SENATE_APPROVED", "Senate Approved"
    REJECTED = "REJECTED", "Rejected"


class RegistrationStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    DEPARTMENT_APPROVED = "DEPARTMENT_APPROVED", "Department Approved"
    DEPARTMENT_REJECTED = "DEPARTMENT_REJECTED", "Department Rejected"


# ============================================================
# ACADEMIC STRUCTURE
# ============================================================

class School(models.Model):
    name = models.CharField(max_length=200, unique=True)
    code = models.CharField(max_length=20, unique=True)

    def __str__(self):
        return self.code


class Department(models.Model):
    name = models.CharField(max_length=200, unique=True)
    code = models.CharField(max_length=20, unique=True)
    school = models.ForeignKey(
        School, on_delete=models.CASCADE, related_name="departments"
    )

    def __str__(self):
        return self.code


class AcademicYear(models.Model):
    """
    An academic session such as "2024/2025". Exactly one row is active;
    its `current_semester` completes the current period.
    """
    name = models.CharField(max_length=20, unique=True)
    is_active = models.BooleanField(default=False)
    current_semester = models.CharField(
        max_length=10, choices=SemesterType.choices, default=SemesterType.FIRST
    )

    def __str__(self):
        return self.name

    @classmethod
    def current_period(cls):
        """Return the active AcademicPeriod, or None when no year is active."""
        from academics.utils.visibility import AcademicPeriod

        active = cls.objects.filter(is_active=True).first()
        if active is None:
            return None
        return AcademicPeriod(active.name, active.current_semester)


class Course(models.Model):
    code = models.CharField(max_length=20, unique=True)
    title = models.CharField(max_length=200)
    credit_unit = models.PositiveIntegerField(default=3)
    level = models.CharField(
        max_length=10, choices=StudentLevel.choices, default=StudentLevel.LEVEL_100
    )
    semester = models.CharField(
        max_length=10, choices=SemesterType.choices, default=SemesterType.FIRST
    )
    department = models.ForeignKey(
        Department, on_delete=models.CASCADE, related_name="courses"
    )

    def __str__(self):
        return f"{self.code} - {self.title}"


class LecturerCourseAssignment(models.Model):
    lecturer = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="teaching"
    )
    course = models.ForeignKey(
        Course, on_delete=models.CASCADE, related_name="lecturers"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["lecturer", "course"], name="unique_lecturer_course"
            ),
        ]

    def __str__(self):
        return f"{self.lecturer.username} → {self.course.code}"


# ============================================================
# PEOPLE
# ============================================================

class UserProfile(models.Model):
    """
    Role and scope of a login. Admin roles map onto an approval level;
    department/school admins are scoped by the FK of the same name.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)
    department = models.ForeignKey(
        Department, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="user_profiles"
    )
    school = models.ForeignKey(
        School, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="user_profiles"
    )

    def __str__(self):
        return f"{self.user.username} ({self.role})"


class Student(models.Model):
    matric_number = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200)
    user = models.OneToOneField(
        User, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="student"
    )
    department = models.ForeignKey(
        Department, on_delete=models.CASCADE, related_name="students"
    )
    level = models.CharField(
        max_length=10, choices=StudentLevel.choices, default=StudentLevel.LEVEL_100
    )

    def __str__(self):
        return f"{self.matric_number} - {self.name}"


# ============================================================
# RESULTS & APPROVALS
# ============================================================

class Result(models.Model):
    """
    A student's score record for one course in one period. Status and
    scores only change through academics.utils.result_approval and
    academics.services.submit_result.
    """
    student = models.ForeignKey(
        Student, on_delete=models.CASCADE, related_name="results"
    )
    course = models.ForeignKey(
        Course, on_delete=models.CASCADE, related_name="results"
    )
    academic_year = models.CharField(max_length=20)
    semester = models.CharField(max_length=10, choices=SemesterType.choices)
    ca_score = models.FloatField(null=True, blank=True)
    exam_score = models.FloatField(null=True, blank=True)
    total_score = models.FloatField(null=True, blank=True)
    grade = models.CharField(max_length=2, null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=ResultStatus.choices, default=ResultStatus.PENDING
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["student", "course", "academic_year", "semester"],
                name="unique_result_per_period",
            ),
        ]
        indexes = [models.Index(fields=["status"], name="result_status_idx")]

    def __str__(self):
        return f"{self.student.matric_number} {self.course.code} {self.academic_year} {self.semester} ({self.status})"


class ResultApproval(models.Model):
    """
    Append-only audit entry, one per result transition.
    """
    result = models.ForeignKey(
        Result, on_delete=models.CASCADE, related_name="approvals"
    )
    level = models.CharField(max_length=20, choices=ApprovalLevel.choices)
    status = models.CharField(max_length=20, choices=ResultStatus.choices)
    comments = models.TextField(null=True, blank=True)
    approver = models.ForeignKey(
        User, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="result_approvals"
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Result #{self.result_id} {self.level} → {self.status}"


# ============================================================
# REGISTRATION & ENROLLMENT
# ============================================================

class CourseRegistration(models.Model):
    student = models.ForeignKey(
        Student, on_delete=models.CASCADE, related_name="registrations"
    )
    academic_year = models.CharField(max_length=20)
    semester = models.CharField(max_length=10, choices=SemesterType.choices)
    selected_courses = models.ManyToManyField(
        Course, blank=True, related_name="registrations"
    )
    status = models.CharField(
        max_length=20, choices=RegistrationStatus.choices,
        default=RegistrationStatus.PENDING,
    )
    reviewed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="reviewed_registrations"
    )
    comments = models.TextField(null=True, blank=True)
    submitted_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["student", "academic_year", "semester"],
                name="unique_registration_per_period",
            ),
        ]

    def __str__(self):
        return f"{self.student.matric_number} {self.academic_year} {self.semester} ({self.status})"


class Enrollment(models.Model):
    student = models.ForeignKey(
        Student, on_delete=models.CASCADE, related_name="enrollments"
    )
    course = models.ForeignKey(
        Course, on_delete=models.CASCADE, related_name="enrollments"
    )
    academic_year = models.CharField(max_length=20)
    semester = models.CharField(max_length=10, choices=SemesterType.choices)
    registration = models.ForeignKey(
        CourseRegistration, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="enrollments"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["student", "course", "academic_year", "semester"],
                name="unique_enrollment_per_period",
            ),
        ]

    def __str__(self):
        return f"{self.student.matric_number} → {self.course.code} ({self.academic_year} {self.semester})"


# ============================================================
# GRADING POLICY
# ============================================================

def default_standing_bands():
    return [
        [4.5, "First Class"],
        [3.5, "Second Class Upper"],
        [2.4, "Second Class Lower"],
        [1.5, "Third Class"],
        [1.0, "Pass"],
        [0.0, "Fail"],
    ]


class ProgressionConfig(models.Model):
    graduation_min_credits = models.PositiveIntegerField(default=120)
    graduation_min_cgpa = models.FloatField(default=1.0)
    credits_per_level = models.PositiveIntegerField(default=24)
    standing_bands = models.JSONField(default=default_standing_bands)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"ProgressionConfig #{self.pk}"

    def as_policy(self):
        from academics.utils.gpa_engine import GradingPolicy

        return GradingPolicy(
            graduation_min_credits=self.graduation_min_credits,
            graduation_min_cgpa=self.graduation_min_cgpa,
            credits_per_level=self.credits_per_level,
            standing_bands=tuple(
                (float(low), str(label)) for low, label in self.standing_bands
            ),
        )


class ProgressionConfigHistory(models.Model):
    config = models.ForeignKey(
        ProgressionConfig, on_delete=models.SET_NULL,
        null=True, blank=True, related_name="histories"
    )
    changed_by = models.CharField(max_length=255)
    changes = models.JSONField(default=dict)
    version = models.IntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Config v{self.version} by {self.changed_by}"


# ============================================================
# AUDIT LOG
# ============================================================

class AuditLog(models.Model):
    action = models.CharField(max_length=100)
    entity = models.CharField(max_length=100)
    entity_id = models.CharField(max_length=255)
    user_id = models.CharField(max_length=255)
    details = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.entity}#{self.entity_id}"
