"""
Role-based access control.

Two layers:
  - `role_required` guards views by UserProfile.role.
  - `Actor` is the explicit identity handed to the approval machines;
    `authorize_*` check that an actor's scope covers a record.

Usage:
    @login_required
    @role_required(Role.DEPARTMENT_ADMIN, Role.SCHOOL_ADMIN)
    def my_view(request): ...
"""
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from django.http import JsonResponse

from academics.models import ApprovalLevel, LecturerCourseAssignment, Role
from academics.utils.errors import Unauthorized

ROLE_LEVELS = {
    Role.DEPARTMENT_ADMIN: ApprovalLevel.DEPARTMENT,
    Role.SCHOOL_ADMIN: ApprovalLevel.SCHOOL,
    Role.SENATE_ADMIN: ApprovalLevel.SENATE,
}


@dataclass(frozen=True)
class Actor:
    level: str
    id: int
    department_id: Optional[int] = None
    school_id: Optional[int] = None


def role_required(*allowed_roles):
    """
    Decorator that checks request.user has a UserProfile with role in `allowed_roles`.
    Must be used AFTER @login_required so request.user is authenticated.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            profile = getattr(request.user, "profile", None)
            if profile is None or profile.role not in allowed_roles:
                return JsonResponse({"message": "Access denied"}, status=403)
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator


def actor_for_user(user) -> Actor:
    """Resolve the approval Actor for an admin user."""
    profile = getattr(user, "profile", None)
    level = ROLE_LEVELS.get(profile.role) if profile else None
    if level is None:
        raise Unauthorized(f"User {user.pk} has no approval role")
    return Actor(
        level=level,
        id=user.pk,
        department_id=profile.department_id,
        school_id=profile.school_id,
    )


def in_scope(actor: Actor, student) -> bool:
    if actor.level == ApprovalLevel.SENATE:
        return True
    if actor.level == ApprovalLevel.SCHOOL:
        return actor.school_id is not None and student.department.school_id == actor.school_id
    return actor.department_id is not None and student.department_id == actor.department_id


def authorize_result(actor: Actor, result):
    if not in_scope(actor, result.student):
        raise Unauthorized(
            f"{actor.level} actor {actor.id} cannot decide result {result.pk}"
        )


def authorize_registration(actor: Actor, registration):
    """Only department admins of the student's department review registrations."""
    if actor.level != ApprovalLevel.DEPARTMENT or not in_scope(actor, registration.student):
        raise Unauthorized(
            f"{actor.level} actor {actor.id} cannot review registration {registration.pk}"
        )


def authorize_lecturer(user, course):
    if not LecturerCourseAssignment.objects.filter(lecturer=user, course=course).exists():
        raise Unauthorized(f"User {user.pk} is not assigned to {course.code}")


def scoped_results(actor: Actor, queryset):
    """Narrow a Result queryset to what the actor may see."""
    if actor.level == ApprovalLevel.SCHOOL:
        return queryset.filter(student__department__school_id=actor.school_id)
    if actor.level == ApprovalLevel.DEPARTMENT:
        return queryset.filter(student__department_id=actor.department_id)
    return queryset
