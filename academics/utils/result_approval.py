"""
Result approval state machine.

    PENDING ──DEPARTMENT──▶ DEPARTMENT_APPROVED ──SCHOOL──▶ FACULTY_APPROVED ──SENATE──▶ SENATE_APPROVED
       ▲                          │                               │
       └──── reject by DEPARTMENT / SCHOOL (scores cleared) ──────┘
                                                   reject by SENATE ──▶ REJECTED

SENATE_APPROVED and REJECTED are terminal. Each transition writes one
ResultApproval entry. Which statuses a level may act on is decided by a
stage policy (strict by default, see STAGE_POLICIES); whether the actor's
department/school covers the result is decided by academics.utils.rbac.
"""
import logging

from django.utils import timezone

from academics.models import ApprovalLevel, Result, ResultApproval, ResultStatus
from academics.utils.batch import BatchCoordinator
from academics.utils.conf import app_setting
from academics.utils.errors import InvalidState
from academics.utils.notify import ApprovalEvent, notify_on_commit
from academics.utils.rbac import authorize_result

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"
ACTIONS = (APPROVE, REJECT)

TRANSITIONS = {
    (ApprovalLevel.DEPARTMENT, APPROVE): ResultStatus.DEPARTMENT_APPROVED,
    (ApprovalLevel.SCHOOL, APPROVE): ResultStatus.FACULTY_APPROVED,
    (ApprovalLevel.SENATE, APPROVE): ResultStatus.SENATE_APPROVED,
    (ApprovalLevel.DEPARTMENT, REJECT): ResultStatus.PENDING,
    (ApprovalLevel.SCHOOL, REJECT): ResultStatus.PENDING,
    (ApprovalLevel.SENATE, REJECT): ResultStatus.REJECTED,
}

# Status each level signs off.
STAGE_FOR_LEVEL = {
    ApprovalLevel.DEPARTMENT: ResultStatus.PENDING,
    ApprovalLevel.SCHOOL: ResultStatus.DEPARTMENT_APPROVED,
    ApprovalLevel.SENATE: ResultStatus.FACULTY_APPROVED,
}

TERMINAL = (ResultStatus.SENATE_APPROVED, ResultStatus.REJECTED)

SCORE_FIELDS = ("ca_score", "exam_score", "total_score", "grade")


def target_status(level, action):
    try:
        return TRANSITIONS[(level, action)]
    except KeyError:
        raise InvalidState(f"No transition for {level} {action}")


def strict_stage(level, result):
    """A level may only act on the status it signs off."""
    expected = STAGE_FOR_LEVEL.get(level)
    if result.status != expected:
        raise InvalidState(
            f"Result {result.pk} is {result.status}; {level} acts on {expected}"
        )


def permissive_stage(level, result):
    """Any level may act on any non-terminal result."""
    if result.status in TERMINAL:
        raise InvalidState(f"Result {result.pk} is {result.status} (terminal)")


STAGE_POLICIES = {
    "strict": strict_stage,
    "permissive": permissive_stage,
}


class ResultApprovalMachine:

    def __init__(self, stage_policy=None):
        name = stage_policy or app_setting("ACADEMICS_RESULT_STAGE_POLICY")
        self.stage_check = STAGE_POLICIES[name]
        self.coordinator = BatchCoordinator(
            Result, label="result",
            select_related=("student__department", "course"),
        )

    def check(self, actor, action, result):
        if action not in ACTIONS:
            raise InvalidState(f"Unknown action {action!r}")
        authorize_result(actor, result)
        self.stage_check(actor.level, result)

    def apply(self, actor, action, comments, result):
        """Move one locked result to its next status and record the entry."""
        new_status = target_status(actor.level, action)
        clears_scores = action == REJECT and new_status == ResultStatus.PENDING

        result.status = new_status
        update_fields = ["status", "updated_at"]
        if clears_scores:
            for name in SCORE_FIELDS:
                setattr(result, name, None)
            update_fields += list(SCORE_FIELDS)
        result.save(update_fields=update_fields)

        ResultApproval.objects.create(
            result=result,
            level=actor.level,
            status=new_status,
            comments=comments or None,
            approver_id=actor.id,
            created_at=timezone.now(),
        )

        event = ApprovalEvent("result", result.pk, new_status, comments or None)
        notify_on_commit(result.student, event)
        if clears_scores:
            for assignment in result.course.lecturers.select_related("lecturer"):
                notify_on_commit(assignment.lecturer, event)
        return result

    def decide(self, result_ids, actor, action, comments=None):
        """
        Apply `action` by `actor` to every result, all or nothing.
        Returns the updated Result instances in id order.
        """
        updated = self.coordinator.run(
            result_ids,
            check=lambda r: self.check(actor, action, r),
            apply=lambda r: self.apply(actor, action, comments, r),
        )
        logger.info(
            "%s %s by %s actor=%s on %d result(s)",
            action, target_status(actor.level, action), actor.level, actor.id, len(updated),
        )
        return updated


def history(result):
    """Ordered approval trail of one result."""
    return list(result.approvals.select_related("approver").order_by("created_at", "id"))


def approval_statistics(results):
    counts = {status: 0 for status in ResultStatus.values}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1
    return {
        "total": sum(counts.values()),
        "pending": counts[ResultStatus.PENDING],
        "department_approved": counts[ResultStatus.DEPARTMENT_APPROVED],
        "faculty_approved": counts[ResultStatus.FACULTY_APPROVED],
        "senate_approved": counts[ResultStatus.SENATE_APPROVED],
        "rejected": counts[ResultStatus.REJECTED],
    }
