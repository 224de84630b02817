from django.contrib import admin
from .models import (
    School,
    Department,
    AcademicYear,
    Course,
    LecturerCourseAssignment,
    UserProfile,
    Student,
    Result,
    ResultApproval,
    CourseRegistration,
    Enrollment,
    ProgressionConfig,
    ProgressionConfigHistory,
    AuditLog,
)

# Academic Structure
admin.site.register(School)
admin.site.register(Department)
admin.site.register(AcademicYear)
admin.site.register(Course)
admin.site.register(LecturerCourseAssignment)

# People
admin.site.register(UserProfile)
admin.site.register(Student)


# Results are read-only here: status only moves through the approval machine.
@admin.register(Result)
class ResultAdmin(admin.ModelAdmin):
    list_display = ("student", "course", "academic_year", "semester", "grade", "status")
    list_filter = ("status", "academic_year", "semester")
    readonly_fields = ("status", "ca_score", "exam_score", "total_score", "grade")


@admin.register(ResultApproval)
class ResultApprovalAdmin(admin.ModelAdmin):
    list_display = ("result", "level", "status", "approver", "created_at")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# Registrations are decided through the registration approval machine only.
@admin.register(CourseRegistration)
class CourseRegistrationAdmin(admin.ModelAdmin):
    list_display = ("student", "academic_year", "semester", "status", "reviewed_by", "reviewed_at")
    list_filter = ("status", "academic_year", "semester")
    readonly_fields = ("status", "reviewed_by", "reviewed_at", "comments")


# Enrollments come from approved registrations; only soft-withdrawal is editable.
@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ("student", "course", "academic_year", "semester", "is_active")
    list_filter = ("is_active", "academic_year", "semester")
    readonly_fields = ("student", "course", "academic_year", "semester", "registration", "created_at")

    def has_add_permission(self, request):
        return False

# Config & Audit
admin.site.register(ProgressionConfig)
admin.site.register(ProgressionConfigHistory)
admin.site.register(AuditLog)
