"""
Batch result verification.

一次请求 = 一个样本（按 accession number 定位）的一批结果。
流程：
  1. 定位 order / sample，拒绝 Cancelled order 和已 Rejected/Archived/Disposed 的样本
  2. 取该病人最近一次 Complete 的 order 作为 delta check 基线
  3. 逐条应用结果：数值化 → delta check → 参考范围 → Verified
  4. 状态上卷 test → sample → order
  5. 带 version 校验写回 + RESULT_VERIFIED 审计，同一个事务

Flags and abnormality never block verification; they are shown to the
reviewer, who decides what to do with them.
"""

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..clinical import (
    DELTA_CHECK_FAILED,
    ReferenceRange,
    coerce_result_value,
    delta_check_failed,
    is_outside_range,
)
from ..exceptions import ConflictError, NotFoundError
from ..identity import VERIFY_RESULTS_ROLES, require_role
from ..models import (
    SAMPLE_STATUS_RANK,
    TERMINAL_SAMPLE_STATUSES,
    OrderStatus,
    SampleStatus,
    TestStatus,
)
from ..repositories import DjangoAuditSink, DjangoOrderRepository, EntityRef, translate_db_errors
from .types import VerificationResult

logger = logging.getLogger(__name__)

RESULT_VERIFIED = 'RESULT_VERIFIED'

_CLOSED_SAMPLE_STATUSES = frozenset({
    SampleStatus.REJECTED,
    SampleStatus.ARCHIVED,
    SampleStatus.DISPOSED,
})


def snapshotted_range(test):
    if test.range_low is None or test.range_high is None:
        return None
    return ReferenceRange(low=test.range_low, high=test.range_high, units=test.range_units or '')


def previous_results_by_code(order):
    """{test_code: result_value} from a baseline order; first occurrence wins."""
    previous = {}
    if order is None:
        return previous
    for sample in order.samples.all():
        for test in sample.tests.all():
            previous.setdefault(test.test_code, test.result_value)
    return previous


def rollup_sample_status(sample, applied_any):
    tests = list(sample.tests.all())
    if all(t.status in (TestStatus.VERIFIED, TestStatus.CANCELLED) for t in tests):
        target = SampleStatus.VERIFIED
    elif applied_any and sample.status == SampleStatus.IN_LAB:
        target = SampleStatus.TESTING
    else:
        return sample.status

    # 状态只能前进
    if SAMPLE_STATUS_RANK.get(target, 0) > SAMPLE_STATUS_RANK.get(sample.status, 0):
        return target
    return sample.status


def rollup_order_status(order):
    samples = list(order.samples.all())
    if samples and all(s.status in TERMINAL_SAMPLE_STATUSES for s in samples):
        return OrderStatus.COMPLETE
    if order.order_status == OrderStatus.PENDING:
        return OrderStatus.IN_PROGRESS
    return order.order_status


class ResultVerificationService:

    def __init__(self, orders=None, audit=None):
        self.orders = orders or DjangoOrderRepository()
        self.audit = audit or DjangoAuditSink()

    def verify_results(self, principal, data):
        require_role(principal, VERIFY_RESULTS_ROLES, 'verify results')

        order = self.orders.get_by_accession(data.accession_number)
        sample = None
        if order is not None:
            sample = next(
                (s for s in order.samples.all() if s.accession_number == data.accession_number), None,
            )
        if sample is None:
            raise NotFoundError(
                message=f"No sample found with accession number {data.accession_number}.",
                code='SAMPLE_NOT_FOUND',
                detail={'accession_number': data.accession_number},
            )

        if order.order_status == OrderStatus.CANCELLED:
            raise ConflictError(
                message=f"Order {order.order_id} is cancelled; results cannot be verified.",
                code='ORDER_CANCELLED',
                detail={'order_id': order.order_id},
            )
        if sample.status in _CLOSED_SAMPLE_STATUSES:
            raise ConflictError(
                message=f"Sample {data.accession_number} is {sample.status}; results cannot be verified.",
                code='SAMPLE_CLOSED',
                detail={'accession_number': data.accession_number, 'current_status': sample.status},
            )

        expected_version = order.version
        threshold = float(getattr(settings, 'LAB_DELTA_CHECK_THRESHOLD_PERCENT', 50.0))
        baseline = self.orders.find_most_recent_complete_for_patient(order.patient_id, order.pk)
        previous = previous_results_by_code(baseline)

        tests_by_code = {}
        for test in sample.tests.all():
            tests_by_code.setdefault(test.test_code, test)

        now = timezone.now()
        verified, ignored, flagged, abnormal = [], [], [], []
        for entry in data.results:
            test = tests_by_code.get(entry.test_code)
            if test is None:
                ignored.append(entry.test_code)
                continue

            value = coerce_result_value(entry.value)
            if delta_check_failed(value, previous.get(test.test_code), threshold):
                if DELTA_CHECK_FAILED not in test.flags:
                    test.flags = list(test.flags) + [DELTA_CHECK_FAILED]
                flagged.append(test.test_code)

            test.result_value = value
            test.is_abnormal = is_outside_range(value, snapshotted_range(test))
            if test.is_abnormal:
                abnormal.append(test.test_code)
            test.status = TestStatus.VERIFIED
            test.verified_by = principal.id
            test.verified_at = now
            if entry.notes is not None:
                test.notes = entry.notes
            verified.append(test.test_code)

        if ignored:
            logger.info(
                "[ResultVerification] %s: ignored test code(s) not in sample: %s",
                data.accession_number, ', '.join(ignored),
            )

        sample.status = rollup_sample_status(sample, applied_any=bool(verified))
        order.order_status = rollup_order_status(order)

        with translate_db_errors('verify results'), transaction.atomic():
            self.orders.save_samples(order, expected_version)
            self.audit.append(
                RESULT_VERIFIED,
                principal,
                EntityRef('orders', str(order.id), order.order_id),
                {
                    'orderId': order.order_id,
                    'accessionNumber': data.accession_number,
                    'verifiedTestCodes': verified,
                    'flaggedTestCodes': flagged,
                    'abnormalTestCodes': abnormal,
                },
            )

        if flagged:
            logger.warning(
                "[ResultVerification] %s: delta check failed for %s",
                data.accession_number, ', '.join(flagged),
            )
        logger.info(
            "[ResultVerification] %s: %d result(s) verified, sample=%s order=%s",
            data.accession_number, len(verified), sample.status, order.order_status,
        )

        return VerificationResult(
            order=order,
            accession_number=data.accession_number,
            sample_status=sample.status,
            order_status=order.order_status,
            verified_test_codes=verified,
            ignored_test_codes=ignored,
            flagged_test_codes=flagged,
            abnormal_test_codes=abnormal,
        )
