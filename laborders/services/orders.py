import logging
import secrets

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..clinical import select_reference_range
from ..exceptions import NotFoundError, ValidationError
from ..identity import CREATE_ORDER_ROLES, ROLES, require_role
from ..models import BillingType, OrderStatus, PaymentStatus, Priority, SampleStatus, TestStatus
from ..repositories import (
    DjangoAuditSink,
    DjangoCatalogRepository,
    DjangoOrderRepository,
    DjangoPatientRepository,
    EntityRef,
    translate_db_errors,
)

logger = logging.getLogger(__name__)

ORDER_CREATE = 'ORDER_CREATE'

_SUFFIX_ALPHABET = '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ'


def generate_order_id(now=None):
    """ORD-<year>-<8 random chars>, e.g. ORD-2026-7F3A9C21. Uniqueness is enforced by the DB."""
    prefix = getattr(settings, 'LAB_ORDER_ID_PREFIX', 'ORD')
    year = (now or timezone.now()).year
    suffix = ''.join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(8))
    return f"{prefix}-{year}-{suffix}"


def group_by_tube_type(entries):
    """
    One physical sample per distinct tube type, in first-seen order.

    Tests sharing a tube share a draw, so GLU + LIPID (both Gold Top) + CBC
    (Lavender Top) yields two samples, not three.
    """
    groups = {}
    for entry in entries:
        groups.setdefault(entry.tube_type, []).append(entry)
    return list(groups.items())


def snapshot_test(entry):
    """
    Copy catalog data into the order.

    The copy is never linked back to the catalog: later price or range edits
    do not touch existing orders (billing / compliance).
    """
    reference_range = select_reference_range(entry.reference_ranges)
    return {
        'test_code': entry.test_code,
        'name': entry.name,
        'price': entry.price,
        'reference_range': reference_range.display() if reference_range else '',
        'range_low': reference_range.low if reference_range else None,
        'range_high': reference_range.high if reference_range else None,
        'range_units': reference_range.units if reference_range else '',
        'status': TestStatus.PENDING,
        'flags': [],
    }


class OrderCreationService:
    """
    POST /api/orders/ 的业务逻辑。

    Fails fast, in this order, before anything is written:
      role → empty test list / STAT justification → patient exists → test codes exist
    """

    def __init__(self, orders=None, catalog=None, patients=None, audit=None):
        self.orders = orders or DjangoOrderRepository()
        self.catalog = catalog or DjangoCatalogRepository()
        self.patients = patients or DjangoPatientRepository()
        self.audit = audit or DjangoAuditSink()

    def create_order(self, principal, data):
        require_role(principal, CREATE_ORDER_ROLES, 'create orders')

        test_codes = list(dict.fromkeys(data.test_codes))
        if not test_codes:
            raise ValidationError(
                message='At least one test must be selected.',
                code='EMPTY_TEST_LIST',
                detail={'field': 'testCodes'},
            )
        if data.priority == Priority.STAT and not (data.clinical_justification or '').strip():
            raise ValidationError(
                message='Clinical justification is required for STAT orders.',
                code='STAT_JUSTIFICATION_REQUIRED',
                detail={'field': 'clinicalJustification'},
            )

        patient = self.patients.get(data.patient_id)
        if patient is None:
            raise NotFoundError(
                message=f"Patient {data.patient_id} not found.",
                code='PATIENT_NOT_FOUND',
                detail={'patient_id': data.patient_id},
            )

        entries = self.catalog.get_many(test_codes)
        unknown = [code for code in test_codes if code not in entries or not entries[code].is_active]
        if unknown:
            raise ValidationError(
                message=f"Unknown test code(s): {', '.join(unknown)}.",
                code='UNKNOWN_TEST_CODE',
                detail={'field': 'testCodes', 'unknown_test_codes': unknown},
            )

        samples = [
            {
                'position': position,
                'specimen_type': tube_type,
                'status': SampleStatus.AWAITING_COLLECTION,
                'tests': [snapshot_test(entry) for entry in grouped],
            }
            for position, (tube_type, grouped) in enumerate(
                group_by_tube_type(entries[code] for code in test_codes)
            )
        ]

        # 医保订单的对账不在本系统范围内，直接标记 Waived
        payment_status = (
            PaymentStatus.UNPAID if data.billing_type == BillingType.SELF_PAY else PaymentStatus.WAIVED
        )

        order_fields = {
            'order_id': generate_order_id(),
            'patient_id': patient.id,
            'physician_id': data.physician_id,
            'icd10_code': data.icd10_code,
            'clinical_justification': data.clinical_justification or '',
            'notes': data.notes or '',
            'order_status': OrderStatus.PENDING,
            'priority': data.priority,
            'billing_type': data.billing_type,
            'payment_status': payment_status,
            'created_by': principal.id,
        }

        with translate_db_errors('create order'), transaction.atomic():
            order = self.orders.create(order_fields, samples)
            self.audit.append(
                ORDER_CREATE,
                principal,
                EntityRef('orders', str(order.id), order.order_id),
                {
                    'orderId': order.order_id,
                    'patientId': patient.id,
                    'testCodes': test_codes,
                    'sampleCount': len(samples),
                    'priority': order.priority,
                },
            )

        logger.info(
            "[OrderCreation] order %s created for patient %s: %d test(s) in %d sample(s)",
            order.order_id, patient.id, len(test_codes), len(samples),
        )
        return order


class OrderQueryService:
    """Read side: any authenticated principal may view an order."""

    def __init__(self, orders=None):
        self.orders = orders or DjangoOrderRepository()

    def get_order(self, principal, order_id):
        require_role(principal, ROLES, 'view orders')
        order = self.orders.get_by_order_id(order_id)
        if order is None:
            raise NotFoundError(
                message=f"Order {order_id} not found.",
                code='ORDER_NOT_FOUND',
                detail={'order_id': order_id},
            )
        return order
