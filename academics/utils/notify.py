"""
Outbound notification hook.

The core only calls `notify(recipient, event)`; delivery belongs to whatever
callable ACADEMICS_NOTIFIER names. Calls are deferred until the surrounding
transaction commits, so a rolled-back decision never notifies anyone.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils.module_loading import import_string

from academics.utils.conf import app_setting

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovalEvent:
    kind: str            # "result" or "registration"
    record_id: int
    status: str
    comments: Optional[str] = None


def log_notifier(recipient, event):
    """Default notifier: writes the event to the log."""
    logger.info(
        "notify recipient=%s %s#%s status=%s comments=%s",
        recipient, event.kind, event.record_id, event.status, event.comments or "",
    )


def get_notifier():
    return import_string(app_setting("ACADEMICS_NOTIFIER"))


def notify_on_commit(recipient, event):
    notifier = get_notifier()
    transaction.on_commit(lambda: notifier(recipient, event))
