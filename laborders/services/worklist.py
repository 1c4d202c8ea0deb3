import logging
from datetime import datetime, timezone as dt_timezone

from django.conf import settings

from ..exceptions import ValidationError
from ..identity import WORKLIST_ROLES, require_role
from ..models import Priority, SampleStatus
from ..repositories import DjangoOrderRepository, PatientSummary
from .types import WorklistPage, WorklistRow

logger = logging.getLogger(__name__)

# received_at 为空的排最前
_EARLIEST = datetime.min.replace(tzinfo=dt_timezone.utc)


def worklist_sort_key(row):
    return (
        0 if row.priority == Priority.STAT else 1,
        row.received_at or _EARLIEST,
    )


class WorklistService:
    """Read-only projection: samples waiting for lab work, STAT first, then oldest first."""

    def __init__(self, orders=None):
        self.orders = orders or DjangoOrderRepository()

    def build_worklist(self, principal, query):
        require_role(principal, WORKLIST_ROLES, 'view the worklist')

        statuses = query.statuses or list(
            getattr(settings, 'LAB_WORKLIST_DEFAULT_STATUSES', [SampleStatus.IN_LAB, SampleStatus.TESTING])
        )
        unknown = [s for s in statuses if s not in SampleStatus.values]
        if unknown:
            raise ValidationError(
                message=f"Unknown sample status(es): {', '.join(unknown)}.",
                code='UNKNOWN_SAMPLE_STATUS',
                detail={'field': 'status', 'unknown_statuses': unknown},
            )

        max_limit = getattr(settings, 'LAB_WORKLIST_MAX_LIMIT', 200)
        limit = query.limit if query.limit is not None else getattr(settings, 'LAB_WORKLIST_DEFAULT_LIMIT', 50)
        offset = query.offset or 0
        if limit < 0 or offset < 0:
            raise ValidationError(
                message='limit and offset must not be negative.',
                code='INVALID_PAGINATION',
                detail={'limit': limit, 'offset': offset},
            )
        limit = min(limit, max_limit)

        rows = []
        for sample in self.orders.find_samples_by_status(statuses):
            order = sample.order
            patient = order.patient
            rows.append(WorklistRow(
                order_id=order.order_id,
                priority=order.priority,
                patient=PatientSummary(id=str(patient.id), full_name=patient.full_name, mrn=patient.mrn),
                sample_position=sample.position,
                specimen_type=sample.specimen_type,
                status=sample.status,
                accession_number=sample.accession_number,
                received_at=sample.received_at,
            ))

        rows.sort(key=worklist_sort_key)
        logger.debug("[Worklist] %d sample(s) in %s", len(rows), ','.join(statuses))

        return WorklistPage(
            rows=rows[offset:offset + limit],
            total=len(rows),
            limit=limit,
            offset=offset,
        )
