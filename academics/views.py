"""
JSON endpoints over academics.services.

All views enforce @login_required + @role_required. Core errors are mapped
onto HTTP status codes by @api_errors.
"""
import json
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from academics import services
from academics.models import (
    AcademicYear,
    CourseRegistration,
    Result,
    Role,
    Student,
)
from academics.utils.errors import Conflict, InvalidState, NotFound, Unauthorized
from academics.utils.gpa_engine import gpa_trend
from academics.utils.rbac import actor_for_user, in_scope, role_required, scoped_results
from academics.utils.registration_approval import credit_summary, registration_statistics
from academics.utils.result_approval import approval_statistics
from academics.utils.visibility import AcademicPeriod, visibility_policy_for

ADMIN_ROLES = (Role.DEPARTMENT_ADMIN, Role.SCHOOL_ADMIN, Role.SENATE_ADMIN)

PAST_TENSE = {"approve": "approved", "reject": "rejected"}

ERROR_STATUS = (
    (NotFound, 404),
    (Unauthorized, 403),
    (InvalidState, 409),
    (Conflict, 409),
)


# ──────────────────────────────────────────────────────────────
#  HELPERS
# ──────────────────────────────────────────────────────────────

def api_errors(view_func):
    """Turn core errors into JSON error responses."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except ValidationError as exc:
            return JsonResponse({"message": "Invalid input", "errors": exc.message_dict}, status=400)
        except tuple(kind for kind, _ in ERROR_STATUS) as exc:
            status = next(code for kind, code in ERROR_STATUS if isinstance(exc, kind))
            body = {"message": exc.message, "error": type(exc).__name__}
            if exc.failures:
                body["failures"] = {str(k): v for k, v in exc.failures.items()}
            return JsonResponse(body, status=status)
    return _wrapped


def _json_body(request):
    try:
        return json.loads(request.body or b"{}")
    except ValueError:
        raise ValidationError({"body": "Request body must be JSON."})


def _ids(values, name):
    if not isinstance(values, list) or not values:
        raise ValidationError({name: "A non-empty list of ids is required."})
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError):
        raise ValidationError({name: "Ids must be integers."})


def _action(data):
    action = data.get("action")
    if action not in ("approve", "reject"):
        raise ValidationError({"action": "Action must be 'approve' or 'reject'."})
    return action


def _period(request):
    year = request.GET.get("academicYear")
    semester = request.GET.get("semester")
    if year and semester:
        return AcademicPeriod(year, semester)
    return AcademicYear.current_period()


def _result_payload(result):
    return {
        "id": result.pk,
        "student": result.student.matric_number,
        "course": result.course.code,
        "creditUnit": result.course.credit_unit,
        "academicYear": result.academic_year,
        "semester": result.semester,
        "caScore": result.ca_score,
        "examScore": result.exam_score,
        "totalScore": result.total_score,
        "grade": result.grade,
        "status": result.status,
    }


# ══════════════════════════════════════════════════════════════
#  A. RESULT APPROVAL
# ══════════════════════════════════════════════════════════════

@login_required
@role_required(*ADMIN_ROLES)
@require_http_methods(["GET", "POST"])
@api_errors
def result_approval(request):
    actor = actor_for_user(request.user)
    if request.method == "POST":
        data = _json_body(request)
        action = _action(data)
        updated = services.decide_results(
            _ids(data.get("resultIds"), "resultIds"),
            actor,
            action,
            data.get("comments"),
        )
        return JsonResponse({
            "message": f"{len(updated)} result(s) {PAST_TENSE[action]} successfully.",
            "updatedResults": [_result_payload(r) for r in updated],
        })

    results = scoped_results(actor, Result.objects.select_related("student", "course"))
    for param, field in (("academicYear", "academic_year"), ("semester", "semester"), ("status", "status")):
        value = request.GET.get(param)
        if value and value != "ALL":
            results = results.filter(**{field: value})
    results = list(results.order_by("student__matric_number", "-academic_year", "-semester", "course__code"))
    return JsonResponse({
        "results": [_result_payload(r) for r in results],
        "statistics": approval_statistics(results),
        "adminInfo": {"level": actor.level, "departmentId": actor.department_id},
    })


@login_required
@role_required(Role.LECTURER)
@require_POST
@api_errors
def submit_result(request):
    data = _json_body(request)
    period = AcademicPeriod(data.get("academicYear"), data.get("semester"))
    if not period.academic_year or not period.semester:
        current = AcademicYear.current_period()
        if current is None:
            raise ValidationError({"academicYear": "No active academic year; pass academicYear and semester."})
        period = current
    result = services.submit_result(
        request.user,
        data.get("studentId"),
        data.get("courseId"),
        period,
        data.get("caScore"),
        data.get("examScore"),
    )
    return JsonResponse({"result": _result_payload(result)})


# ══════════════════════════════════════════════════════════════
#  B. COURSE REGISTRATIONS
# ══════════════════════════════════════════════════════════════

@login_required
@role_required(Role.DEPARTMENT_ADMIN)
@require_GET
@api_errors
def registrations(request):
    actor = actor_for_user(request.user)
    qs = CourseRegistration.objects.filter(
        student__department_id=actor.department_id
    ).select_related("student")
    for param, field in (("academicYear", "academic_year"), ("semester", "semester"), ("status", "status")):
        value = request.GET.get(param)
        if value:
            qs = qs.filter(**{field: value})

    regs = list(qs.order_by("status", "submitted_at"))
    data = []
    for reg in regs:
        data.append({
            "id": reg.pk,
            "student": reg.student.matric_number,
            "academicYear": reg.academic_year,
            "semester": reg.semester,
            "status": reg.status,
            "courses": list(reg.selected_courses.values_list("code", flat=True)),
            **credit_summary(reg),
        })
    return JsonResponse({"registrations": data, "statistics": registration_statistics(regs)})


@login_required
@role_required(Role.DEPARTMENT_ADMIN)
@require_POST
@api_errors
def decide_registrations(request):
    actor = actor_for_user(request.user)
    data = _json_body(request)
    action = _action(data)

    if "registrationIds" in data:
        outcome = services.decide_registration(
            _ids(data.get("registrationIds"), "registrationIds"),
            action, actor, data.get("comments"),
        )
        return JsonResponse({"updatedCount": outcome["count"], "action": action})

    reg_id = _ids([data.get("registrationId")], "registrationId")[0]
    reg = services.decide_registration(reg_id, action, actor, data.get("comments"))
    return JsonResponse({"id": reg.pk, "status": reg.status})


# ══════════════════════════════════════════════════════════════
#  C. STUDENT RESULTS & GPA
# ══════════════════════════════════════════════════════════════

def _student_for(request, student_id):
    """Students see themselves; admins see students in their scope."""
    student = get_object_or_404(Student.objects.select_related("department"), pk=student_id)
    if request.user.profile.role == Role.STUDENT:
        if student.user_id != request.user.pk:
            raise Unauthorized("Students may only view their own results")
    elif not in_scope(actor_for_user(request.user), student):
        raise Unauthorized(f"Student {student.pk} is outside your scope")
    return student


@login_required
@role_required(Role.STUDENT, *ADMIN_ROLES)
@require_GET
@api_errors
def student_gpa(request, student_id):
    student = _student_for(request, student_id)
    report = services.compute_gpa(student.pk, services.student_rows(student))
    payload = report.to_dict()
    payload["trend"] = gpa_trend(report.sessions)
    return JsonResponse(payload)


@login_required
@role_required(Role.STUDENT, *ADMIN_ROLES)
@require_GET
@api_errors
def student_results(request, student_id):
    student = _student_for(request, student_id)
    policy = visibility_policy_for(_period(request))
    results = policy.filter(student.results.select_related("student", "course"))
    return JsonResponse({
        "results": [_result_payload(r) for r in results.order_by("-academic_year", "-semester", "course__code")],
    })
