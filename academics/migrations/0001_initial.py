import academics.models
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AcademicYear",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=20, unique=True)),
                ("is_active", models.BooleanField(default=False)),
                ("current_semester", models.CharField(choices=[("FIRST", "First"), ("SECOND", "Second")], default="FIRST", max_length=10)),
            ],
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=100)),
                ("entity", models.CharField(max_length=100)),
                ("entity_id", models.CharField(max_length=255)),
                ("user_id", models.CharField(max_length=255)),
                ("details", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="ProgressionConfig",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("graduation_min_credits", models.PositiveIntegerField(default=120)),
                ("graduation_min_cgpa", models.FloatField(default=1.0)),
                ("credits_per_level", models.PositiveIntegerField(default=24)),
                ("standing_bands", models.JSONField(default=academics.models.default_standing_bands)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="School",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True)),
                ("code", models.CharField(max_length=20, unique=True)),
            ],
        ),
        migrations.CreateModel(
            name="Department",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, unique=True)),
                ("code", models.CharField(max_length=20, unique=True)),
                ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="departments", to="academics.school")),
            ],
        ),
        migrations.CreateModel(
            name="Course",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("title", models.CharField(max_length=200)),
                ("credit_unit", models.PositiveIntegerField(default=3)),
                ("level", models.CharField(choices=[("LEVEL_100", "100 Level"), ("LEVEL_200", "200 Level"), ("LEVEL_300", "300 Level"), ("LEVEL_400", "400 Level"), ("LEVEL_500", "500 Level")], default="LEVEL_100", max_length=10)),
                ("semester", models.CharField(choices=[("FIRST", "First"), ("SECOND", "Second")], default="FIRST", max_length=10)),
                ("department", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="courses", to="academics.department")),
            ],
        ),
        migrations.CreateModel(
            name="LecturerCourseAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("course", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lecturers", to="academics.course")),
                ("lecturer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="teaching", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("lecturer", "course"), name="unique_lecturer_course")],
            },
        ),
        migrations.CreateModel(
            name="ProgressionConfigHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("changed_by", models.CharField(max_length=255)),
                ("changes", models.JSONField(default=dict)),
                ("version", models.IntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("config", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="histories", to="academics.progressionconfig")),
            ],
        ),
        migrations.CreateModel(
            name="Student",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("matric_number", models.CharField(max_length=30, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("level", models.CharField(choices=[("LEVEL_100", "100 Level"), ("LEVEL_200", "200 Level"), ("LEVEL_300", "300 Level"), ("LEVEL_400", "400 Level"), ("LEVEL_500", "500 Level")], default="LEVEL_100", max_length=10)),
                ("department", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="students", to="academics.department")),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="student", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name="CourseRegistration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("academic_year", models.CharField(max_length=20)),
                ("semester", models.CharField(choices=[("FIRST", "First"), ("SECOND", "Second")], max_length=10)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("DEPARTMENT_APPROVED", "Department Approved"), ("DEPARTMENT_REJECTED", "Department Rejected")], default="PENDING", max_length=20)),
                ("comments", models.TextField(blank=True, null=True)),
                ("submitted_at", models.DateTimeField(auto_now_add=True)),
                ("reviewed_at", models.DateTimeField(blank=True, null=True)),
                ("reviewed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reviewed_registrations", to=settings.AUTH_USER_MODEL)),
                ("selected_courses", models.ManyToManyField(blank=True, related_name="registrations", to="academics.course")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="academics.student")),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("student", "academic_year", "semester"), name="unique_registration_per_period")],
            },
        ),
        migrations.CreateModel(
            name="Enrollment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("academic_year", models.CharField(max_length=20)),
                ("semester", models.CharField(choices=[("FIRST", "First"), ("SECOND", "Second")], max_length=10)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("course", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="enrollments", to="academics.course")),
                ("registration", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="enrollments", to="academics.courseregistration")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="enrollments", to="academics.student")),
            ],
            options={
                "constraints": [models.UniqueConstraint(fields=("student", "course", "academic_year", "semester"), name="unique_enrollment_per_period")],
            },
        ),
        migrations.CreateModel(
            name="Result",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("academic_year", models.CharField(max_length=20)),
                ("semester", models.CharField(choices=[("FIRST", "First"), ("SECOND", "Second")], max_length=10)),
                ("ca_score", models.FloatField(blank=True, null=True)),
                ("exam_score", models.FloatField(blank=True, null=True)),
                ("total_score", models.FloatField(blank=True, null=True)),
                ("grade", models.CharField(blank=True, max_length=2, null=True)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("DEPARTMENT_APPROVED", "Department Approved"), ("FACULTY_APPROVED", "Faculty Approved"), ("SENATE_APPROVED", "Senate Approved"), ("REJECTED", "Rejected")], default="PENDING", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("course", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="results", to="academics.course")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="results", to="academics.student")),
            ],
            options={
                "indexes": [models.Index(fields=["status"], name="result_status_idx")],
                "constraints": [models.UniqueConstraint(fields=("student", "course", "academic_year", "semester"), name="unique_result_per_period")],
            },
        ),
        migrations.CreateModel(
            name="ResultApproval",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("level", models.CharField(choices=[("DEPARTMENT", "Department"), ("SCHOOL", "School (Faculty)"), ("SENATE", "Senate")], max_length=20)),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("DEPARTMENT_APPROVED", "Department Approved"), ("FACULTY_APPROVED", "Faculty Approved"), ("SENATE_APPROVED", "Senate Approved"), ("REJECTED", "Rejected")], max_length=20)),
                ("comments", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("approver", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="result_approvals", to=settings.AUTH_USER_MODEL)),
                ("result", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="approvals", to="academics.result")),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(choices=[("STUDENT", "Student"), ("LECTURER", "Lecturer"), ("DEPARTMENT_ADMIN", "Department Admin"), ("SCHOOL_ADMIN", "School Admin"), ("SENATE_ADMIN", "Senate Admin")], default="STUDENT", max_length=20)),
                ("department", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="user_profiles", to="academics.department")),
                ("school", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="user_profiles", to="academics.school")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="profile", to=settings.AUTH_USER_MODEL)),
            ],
        ),
    ]
