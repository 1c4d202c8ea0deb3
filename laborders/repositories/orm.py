"""
Django ORM 实现的 collaborators。

并发约定（见 OrderRepository docstring）：
- 所有写 samples / payments 的路径都先 UPDATE orders 行（拿行锁 + 校验/递增 version），
  再写子表。加锁顺序一致，避免 accession 和 verify 互相死锁。
- version 不匹配 / 条件更新 0 行 → ConflictError，整个 atomic 块回滚。
"""

import logging
from contextlib import contextmanager

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from ..exceptions import ConflictError, InternalError
from ..models import (
    AuditEvent,
    CatalogTest,
    Order,
    OrderedTest,
    OrderStatus,
    Patient,
    Payment,
    Sample,
    SampleStatus,
)
from .base import AuditLog, AuditSink, CatalogRepository, OrderRepository, PatientRepository
from .types import CatalogEntry, PatientSummary

logger = logging.getLogger(__name__)

TEST_RESULT_FIELDS = ['status', 'result_value', 'notes', 'is_abnormal', 'flags', 'verified_by', 'verified_at']


@contextmanager
def translate_db_errors(operation):
    """
    IntegrityError → ConflictError, 其他 DatabaseError → InternalError.

    必须包在 transaction.atomic() 外面，这样提交阶段的错误也能被捕获。
    """
    try:
        yield
    except IntegrityError as exc:
        logger.warning("[Persistence] integrity conflict during %s: %s", operation, exc)
        raise ConflictError(
            message=f"Could not {operation}: the record was changed by another request.",
            code='INTEGRITY_CONFLICT',
        ) from exc
    except DatabaseError as exc:
        logger.error("[Persistence] database failure during %s: %s", operation, exc)
        raise InternalError(
            message=f"Could not {operation} due to a storage failure.",
            code='PERSISTENCE_FAILURE',
        ) from exc


class DjangoCatalogRepository(CatalogRepository):

    def get_many(self, test_codes):
        rows = CatalogTest.objects.filter(test_code__in=list(test_codes))
        return {
            row.test_code: CatalogEntry(
                test_code=row.test_code,
                name=row.name,
                price=row.price,
                tube_type=row.tube_type,
                reference_ranges=list(row.reference_ranges or []),
                is_active=row.is_active,
            )
            for row in rows
        }


class DjangoPatientRepository(PatientRepository):

    def get(self, patient_id):
        try:
            patient = Patient.objects.get(pk=patient_id)
        except (Patient.DoesNotExist, DjangoValidationError, ValueError):
            return None
        return PatientSummary(id=str(patient.id), full_name=patient.full_name, mrn=patient.mrn)


class DjangoAuditSink(AuditSink):

    def append(self, action, actor, entity_ref, details):
        AuditEvent.objects.create(
            action=action,
            actor_id=actor.id,
            actor_role=actor.role,
            entity_type=entity_ref.entity_type,
            entity_id=entity_ref.entity_id,
            details=details,
        )


class DjangoAuditLog(AuditLog):

    def search(self, term, limit):
        match = Q(details__orderId=term) | Q(details__accessionNumber=term) | Q(entity_id=term)
        return list(AuditEvent.objects.filter(match).order_by('-timestamp')[:limit])


class DjangoOrderRepository(OrderRepository):

    def _aggregate_queryset(self):
        return (
            Order.objects
            .select_related('patient')
            .prefetch_related('samples__tests', 'payments')
        )

    def create(self, order_fields, samples):
        with transaction.atomic():
            order = Order.objects.create(**order_fields)
            for sample_fields in samples:
                fields = dict(sample_fields)
                tests = fields.pop('tests', [])
                sample = Sample.objects.create(order=order, **fields)
                OrderedTest.objects.bulk_create([OrderedTest(sample=sample, **t) for t in tests])
        return self.get_by_order_id(order.order_id)

    def get_by_order_id(self, order_id):
        return self._aggregate_queryset().filter(order_id=order_id).first()

    def get_by_accession(self, accession_number):
        return self._aggregate_queryset().filter(samples__accession_number=accession_number).first()

    def _bump_version(self, order_pk, expected_version=None, **fields):
        """UPDATE orders SET version = version + 1 ... [WHERE version = expected]; returns rows."""
        qs = Order.objects.filter(pk=order_pk)
        if expected_version is not None:
            qs = qs.filter(version=expected_version)
        return qs.update(version=F('version') + 1, **fields)

    def accession_sample(self, sample, accession_number, received_at, received_by):
        with transaction.atomic():
            self._bump_version(sample.order_id, updated_at=received_at)
            updated = (
                Sample.objects
                .filter(pk=sample.pk, status=SampleStatus.AWAITING_COLLECTION)
                .update(
                    status=SampleStatus.IN_LAB,
                    accession_number=accession_number,
                    received_at=received_at,
                    received_by=received_by,
                )
            )
            if updated == 0:
                # 在我们读取之后、写入之前，另一个请求已经 accession 了这个样本
                raise ConflictError(
                    message='Sample was accessioned by another request. Reload before trying again.',
                    code='SAMPLE_ALREADY_ACCESSIONED',
                    detail={'sample_position': sample.position},
                )

        sample.status = SampleStatus.IN_LAB
        sample.accession_number = accession_number
        sample.received_at = received_at
        sample.received_by = received_by

    def save_samples(self, order, expected_version):
        now = timezone.now()
        with transaction.atomic():
            updated = self._bump_version(
                order.pk, expected_version,
                order_status=order.order_status,
                updated_at=now,
            )
            if updated == 0:
                raise self._stale(order, expected_version)

            samples = list(order.samples.all())
            tests = [test for sample in samples for test in sample.tests.all()]
            Sample.objects.bulk_update(samples, ['status'])
            OrderedTest.objects.bulk_update(tests, TEST_RESULT_FIELDS)

        order.version = expected_version + 1
        order.updated_at = now

    def append_payment(self, order, payment_fields, expected_version):
        now = timezone.now()
        with transaction.atomic():
            updated = self._bump_version(
                order.pk, expected_version,
                payment_status=order.payment_status,
                updated_at=now,
            )
            if updated == 0:
                raise self._stale(order, expected_version)
            payment = Payment.objects.create(order=order, **payment_fields)

        order.version = expected_version + 1
        order.updated_at = now
        return payment

    def find_most_recent_complete_for_patient(self, patient_id, exclude_order_pk=None):
        qs = Order.objects.filter(patient_id=patient_id, order_status=OrderStatus.COMPLETE)
        if exclude_order_pk is not None:
            qs = qs.exclude(pk=exclude_order_pk)
        return qs.order_by('-created_at').prefetch_related('samples__tests').first()

    def find_samples_by_status(self, statuses):
        return list(
            Sample.objects
            .filter(status__in=list(statuses))
            .select_related('order', 'order__patient')
        )

    @staticmethod
    def _stale(order, expected_version):
        return ConflictError(
            message=f"Order {order.order_id} was modified by another request. Reload and try again.",
            code='STALE_ORDER_VERSION',
            detail={'order_id': order.order_id, 'expected_version': expected_version},
        )
