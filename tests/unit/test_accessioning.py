"""
Unit tests for AccessioningService.

重点是并发安全：AwaitingCollection → InLab 是条件更新，
用 patch 在「读取之后、写入之前」注入一个竞争写入者来模拟两个技术员同时扫码。
"""
import re
from unittest.mock import patch

import pytest
from django.utils import timezone

from laborders.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from laborders.intake.types import AccessionInput
from laborders.models import AuditEvent, Order, Sample, SampleStatus
from laborders.services import AccessioningService, generate_accession_number
from laborders.services.accessioning import SAMPLE_ACCESSIONED
from tests.conftest import OrderedTestFactory, OrderFactory, SampleFactory


@pytest.fixture
def pending_order():
    order = OrderFactory()
    for position, tube in enumerate(['Gold Top', 'Lavender Top']):
        sample = SampleFactory(order=order, position=position, specimen_type=tube)
        OrderedTestFactory(sample=sample)
    return order


class TestGenerateAccessionNumber:

    def test_format(self):
        assert re.fullmatch(r'ACC-\d{4}-[0-9A-Z]{6}', generate_accession_number())

    def test_uses_year(self):
        now = timezone.now().replace(year=2031, month=1, day=1)
        assert generate_accession_number(now).startswith('ACC-2031-')


@pytest.mark.django_db
class TestAccessionSample:

    def test_happy_path(self, technician, pending_order):
        result = AccessioningService().accession_sample(technician, AccessionInput(pending_order.order_id, 1))

        assert result.order_id == pending_order.order_id
        assert result.sample_position == 1
        assert result.status == SampleStatus.IN_LAB

        sample = Sample.objects.get(order=pending_order, position=1)
        assert sample.status == SampleStatus.IN_LAB
        assert sample.accession_number == result.accession_number
        assert sample.received_by == 'tech-1'
        assert sample.received_at is not None
        # 另一个样本不受影响
        assert Sample.objects.get(order=pending_order, position=0).status == SampleStatus.AWAITING_COLLECTION

    def test_bumps_order_version(self, manager, pending_order):
        AccessioningService().accession_sample(manager, AccessionInput(pending_order.order_id, 0))
        assert Order.objects.get(pk=pending_order.pk).version == pending_order.version + 1

    def test_audit_event(self, technician, pending_order):
        result = AccessioningService().accession_sample(technician, AccessionInput(pending_order.order_id, 0))

        event = AuditEvent.objects.get()
        assert event.action == SAMPLE_ACCESSIONED
        assert event.details['accessionNumber'] == result.accession_number
        assert event.details['sampleIndex'] == 0
        assert event.details['orderId'] == pending_order.order_id

    def test_second_accession_conflicts(self, technician, pending_order):
        service = AccessioningService()
        first = service.accession_sample(technician, AccessionInput(pending_order.order_id, 0))

        with pytest.raises(ConflictError) as exc_info:
            service.accession_sample(technician, AccessionInput(pending_order.order_id, 0))

        assert exc_info.value.code == 'SAMPLE_NOT_AWAITING_COLLECTION'
        assert Sample.objects.get(order=pending_order, position=0).accession_number == first.accession_number
        assert AuditEvent.objects.count() == 1


@pytest.mark.django_db
class TestAccessionRace:

    def test_concurrent_writer_wins(self, technician, pending_order):
        """Another technician accessions the tube between our read and our write."""
        sample = Sample.objects.get(order=pending_order, position=0)

        def competing_scan(now=None):
            Sample.objects.filter(pk=sample.pk).update(
                status=SampleStatus.IN_LAB, accession_number='ACC-2026-WINNER', received_by='tech-2',
            )
            return 'ACC-2026-LOSER1'

        with patch('laborders.services.accessioning.generate_accession_number', side_effect=competing_scan):
            with pytest.raises(ConflictError) as exc_info:
                AccessioningService().accession_sample(technician, AccessionInput(pending_order.order_id, 0))

        assert exc_info.value.code == 'SAMPLE_ALREADY_ACCESSIONED'
        sample.refresh_from_db()
        assert sample.accession_number == 'ACC-2026-WINNER'
        assert sample.received_by == 'tech-2'
        # 整个事务回滚：version 没动，没有审计
        assert Order.objects.get(pk=pending_order.pk).version == pending_order.version
        assert AuditEvent.objects.count() == 0

    def test_accession_number_collision_is_conflict(self, technician, pending_order):
        other = SampleFactory(order=OrderFactory(), accession_number='ACC-2026-DUPE01', status=SampleStatus.IN_LAB)

        with patch('laborders.services.accessioning.generate_accession_number', return_value=other.accession_number):
            with pytest.raises(ConflictError) as exc_info:
                AccessioningService().accession_sample(technician, AccessionInput(pending_order.order_id, 0))

        assert exc_info.value.code == 'INTEGRITY_CONFLICT'
        assert Sample.objects.get(order=pending_order, position=0).status == SampleStatus.AWAITING_COLLECTION


@pytest.mark.django_db
class TestAccessionRejections:

    def test_role(self, receptionist, pending_order):
        with pytest.raises(ForbiddenError):
            AccessioningService().accession_sample(receptionist, AccessionInput(pending_order.order_id, 0))

    def test_negative_position(self, technician, pending_order):
        with pytest.raises(ValidationError):
            AccessioningService().accession_sample(technician, AccessionInput(pending_order.order_id, -1))

    def test_unknown_order(self, technician):
        with pytest.raises(NotFoundError) as exc_info:
            AccessioningService().accession_sample(technician, AccessionInput('ORD-2026-NOPE0000', 0))
        assert exc_info.value.code == 'ORDER_NOT_FOUND'

    def test_unknown_position(self, technician, pending_order):
        with pytest.raises(NotFoundError) as exc_info:
            AccessioningService().accession_sample(technician, AccessionInput(pending_order.order_id, 5))
        assert exc_info.value.code == 'SAMPLE_NOT_FOUND'
