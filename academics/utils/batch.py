"""
All-or-nothing application of one decision across many records.

    coordinator = BatchCoordinator(Result, label="result")
    updated = coordinator.run(ids, check=..., apply=...)

`run` locks every targeted row, runs `check` on each one and only when
every record passes does it call `apply`. Any failure raises a single
error carrying every per-record reason; nothing is written.
"""
import logging

from django.db import transaction

from academics.utils.errors import PRECEDENCE, ApprovalError, NotFound

logger = logging.getLogger(__name__)


def unique_ids(ids):
    """Drop duplicate ids, keeping first-seen order."""
    seen = []
    for pk in ids:
        if pk not in seen:
            seen.append(pk)
    return seen


def aggregate_error(label, failures):
    """Build the one error reported for a failed batch."""
    kinds = {type(exc) for exc in failures.values()}
    kind = next((k for k in PRECEDENCE if k in kinds), ApprovalError)
    reasons = {pk: exc.message or str(exc) for pk, exc in failures.items()}
    return kind(
        f"{len(failures)} {label}(s) cannot be decided; batch aborted",
        failures=reasons,
    )


class BatchCoordinator:

    def __init__(self, model, label=None, select_related=()):
        self.model = model
        self.label = label or model._meta.model_name
        self.select_related = tuple(select_related)

    def lock(self, ids):
        """
        Load and row-lock the records, in the caller's id order.
        Must run inside transaction.atomic().
        """
        ids = unique_ids(ids)
        qs = self.model.objects.select_for_update().filter(pk__in=ids)
        if self.select_related:
            qs = qs.select_related(*self.select_related)
        found = {obj.pk: obj for obj in qs}
        missing = [pk for pk in ids if pk not in found]
        return [found[pk] for pk in ids if pk in found], missing

    def run(self, ids, check, apply):
        """Check every record, then apply to every record, atomically."""
        if not ids:
            raise NotFound(f"No {self.label} ids supplied")

        with transaction.atomic():
            records, missing = self.lock(ids)
            failures = {
                pk: NotFound(f"{self.label} {pk} does not exist") for pk in missing
            }
            for record in records:
                try:
                    check(record)
                except ApprovalError as exc:
                    failures[record.pk] = exc

            if failures:
                error = aggregate_error(self.label, failures)
                logger.warning("%s batch aborted: %s", self.label, error.failures)
                raise error

            updated = [apply(record) for record in records]

        logger.info("%s batch applied to %d record(s)", self.label, len(updated))
        return updated
