"""
App-level settings with defaults. Override any of them in Django settings.
"""
from django.conf import settings

DEFAULTS = {
    "ACADEMICS_NOTIFIER": "academics.utils.notify.log_notifier",
    "ACADEMICS_RESULT_STAGE_POLICY": "strict",
    "ACADEMICS_PRIOR_PERIOD_VISIBLE_STATUSES": ("SENATE_APPROVED",),
}


def app_setting(name):
    return getattr(settings, name, DEFAULTS[name])
