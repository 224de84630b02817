"""
Lightweight audit-log helper.
"""
import logging

from academics.models import AuditLog

audit_logger = logging.getLogger("audit")


def log_action(user, action: str, entity: str, entity_id, details: str = ""):
    """
    Create an AuditLog entry and mirror it to the `audit` logger.
    `user` can be a User instance or a string (username / id).
    """
    uid = str(user.pk) if hasattr(user, "pk") else str(user)
    audit_logger.info("%s %s#%s by user=%s %s", action, entity, entity_id, uid, details)
    return AuditLog.objects.create(
        action=action,
        entity=entity,
        entity_id=str(entity_id),
        user_id=uid,
        details=details,
    )
