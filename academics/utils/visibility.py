"""
Which results a student may see.

Current-period results and prior-period results each have their own set
of visible statuses. `None` means every status is visible. The current
period is always passed in explicitly.
"""
from collections import namedtuple

from django.db.models import Q

from academics.models import ResultStatus
from academics.utils.conf import app_setting

AcademicPeriod = namedtuple("AcademicPeriod", "academic_year semester")


class ResultVisibilityPolicy:

    def __init__(self, current_period, current_statuses=(ResultStatus.SENATE_APPROVED,),
                 prior_statuses=(ResultStatus.SENATE_APPROVED,)):
        self.current_period = current_period
        self.current_statuses = None if current_statuses is None else tuple(current_statuses)
        self.prior_statuses = None if prior_statuses is None else tuple(prior_statuses)

    def _in_current(self, result):
        return (
            self.current_period is not None
            and result.academic_year == self.current_period.academic_year
            and result.semester == self.current_period.semester
        )

    def is_visible(self, result):
        allowed = self.current_statuses if self._in_current(result) else self.prior_statuses
        return allowed is None or result.status in allowed

    def filter(self, queryset):
        if self.current_period is None:
            current = Q(pk__in=[])
        else:
            current = Q(
                academic_year=self.current_period.academic_year,
                semester=self.current_period.semester,
            )

        current_q = current
        if self.current_statuses is not None:
            current_q &= Q(status__in=self.current_statuses)
        prior_q = ~current
        if self.prior_statuses is not None:
            prior_q &= Q(status__in=self.prior_statuses)
        return queryset.filter(current_q | prior_q)


def visibility_policy_for(period):
    prior = app_setting("ACADEMICS_PRIOR_PERIOD_VISIBLE_STATUSES")
    return ResultVisibilityPolicy(period, prior_statuses=prior)
