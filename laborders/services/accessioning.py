import logging
import secrets

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..identity import ACCESSION_ROLES, require_role
from ..models import SampleStatus
from ..repositories import DjangoAuditSink, DjangoOrderRepository, EntityRef, translate_db_errors
from .types import AccessionResult

logger = logging.getLogger(__name__)

SAMPLE_ACCESSIONED = 'SAMPLE_ACCESSIONED'

_SUFFIX_ALPHABET = '0123456789ABCDEFGHJKLMNPQRSTUVWXYZ'   # 去掉 I / O，标签上容易看错


def generate_accession_number(now=None):
    """
    ACC-<year>-<6 random chars>, e.g. ACC-2026-K3Q9ZD.

    Only collision-improbable; the unique constraint on
    samples.accession_number is what actually guarantees uniqueness.
    """
    prefix = getattr(settings, 'LAB_ACCESSION_PREFIX', 'ACC')
    year = (now or timezone.now()).year
    suffix = ''.join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"{prefix}-{year}-{suffix}"


class AccessioningService:
    """
    Receives a collected sample into the lab.

    The AwaitingCollection → InLab transition is a compare-and-swap on the
    sample's persisted status. When two technicians scan the same tube, one
    wins and the other gets ConflictError; the loser must not retry.
    """

    def __init__(self, orders=None, audit=None):
        self.orders = orders or DjangoOrderRepository()
        self.audit = audit or DjangoAuditSink()

    def accession_sample(self, principal, data):
        require_role(principal, ACCESSION_ROLES, 'accession samples')

        if data.sample_position < 0:
            raise ValidationError(
                message='Sample index must not be negative.',
                code='INVALID_SAMPLE_INDEX',
                detail={'field': 'sampleIndex', 'value': data.sample_position},
            )

        order = self.orders.get_by_order_id(data.order_id)
        if order is None:
            raise NotFoundError(
                message=f"Order with ID {data.order_id} not found.",
                code='ORDER_NOT_FOUND',
                detail={'order_id': data.order_id},
            )

        sample = next((s for s in order.samples.all() if s.position == data.sample_position), None)
        if sample is None:
            raise NotFoundError(
                message=f"Sample at index {data.sample_position} not found in order {data.order_id}.",
                code='SAMPLE_NOT_FOUND',
                detail={'order_id': data.order_id, 'sample_index': data.sample_position},
            )

        if sample.status != SampleStatus.AWAITING_COLLECTION:
            raise ConflictError(
                message='Sample has already been accessioned or processed.',
                code='SAMPLE_NOT_AWAITING_COLLECTION',
                detail={'order_id': order.order_id, 'current_status': sample.status},
            )

        received_at = timezone.now()
        accession_number = generate_accession_number(received_at)

        with translate_db_errors('accession sample'), transaction.atomic():
            self.orders.accession_sample(sample, accession_number, received_at, principal.id)
            self.audit.append(
                SAMPLE_ACCESSIONED,
                principal,
                EntityRef('orders', str(order.id), order.order_id),
                {
                    'orderId': order.order_id,
                    'sampleIndex': sample.position,
                    'specimenType': sample.specimen_type,
                    'accessionNumber': accession_number,
                },
            )

        logger.info(
            "[Accessioning] %s sample %d accessioned as %s by %s",
            order.order_id, sample.position, accession_number, principal.id,
        )
        return AccessionResult(
            order_id=order.order_id,
            sample_position=sample.position,
            accession_number=accession_number,
            received_at=received_at,
            status=sample.status,
        )
