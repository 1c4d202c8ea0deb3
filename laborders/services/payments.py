import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from ..exceptions import NotFoundError, ValidationError
from ..identity import PAYMENT_ROLES, require_role
from ..models import PaymentStatus
from ..repositories import DjangoAuditSink, DjangoOrderRepository, EntityRef, translate_db_errors
from .types import PaymentResult

logger = logging.getLogger(__name__)

PAYMENT_RECORDED = 'PAYMENT_RECORDED'

CENT = Decimal('0.01')


def to_money(value):
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        # 超出 decimal context 精度（例如 1e30）
        raise ValidationError(
            message='Amount is out of range.',
            code='INVALID_PAYMENT_AMOUNT',
            detail={'field': 'amount', 'value': str(value)},
        ) from exc


class PaymentLedgerService:
    """
    Payments against an order's snapshotted test prices.

    Invariant: sum(payments) never exceeds sum(test prices). balance_due()
    clamps at zero for display only; the ledger itself is exact.
    """

    def __init__(self, orders=None, audit=None):
        self.orders = orders or DjangoOrderRepository()
        self.audit = audit or DjangoAuditSink()

    # ── queries ──

    @staticmethod
    def total_cost(order):
        return to_money(sum(
            (test.price for sample in order.samples.all() for test in sample.tests.all()),
            Decimal('0'),
        ))

    @staticmethod
    def total_paid(order):
        return to_money(sum((p.amount for p in order.payments.all()), Decimal('0')))

    def balance_due(self, order):
        return max(Decimal('0.00'), self.total_cost(order) - self.total_paid(order))

    # ── commands ──

    def record_payment(self, principal, data):
        require_role(principal, PAYMENT_ROLES, 'record payments')

        amount = to_money(data.amount)
        if amount <= 0:
            raise ValidationError(
                message='Payment amount must be greater than zero.',
                code='INVALID_PAYMENT_AMOUNT',
                detail={'field': 'amount', 'value': str(data.amount)},
            )

        order = self.orders.get_by_order_id(data.order_id)
        if order is None:
            raise NotFoundError(
                message=f"Order {data.order_id} not found.",
                code='ORDER_NOT_FOUND',
                detail={'order_id': data.order_id},
            )

        expected_version = order.version
        total_cost = self.total_cost(order)
        already_paid = self.total_paid(order)
        remaining = total_cost - already_paid

        if amount > remaining:
            overage = amount - remaining
            raise ValidationError(
                message=(
                    f"Payment of ${amount:.2f} exceeds the remaining balance "
                    f"of ${remaining:.2f} by ${overage:.2f}."
                ),
                code='PAYMENT_EXCEEDS_BALANCE',
                detail={
                    'amount': f"{amount:.2f}",
                    'overage': f"{overage:.2f}",
                    'remaining_balance': f"{remaining:.2f}",
                },
            )

        new_total = already_paid + amount
        order.payment_status = PaymentStatus.PAID if new_total >= total_cost else PaymentStatus.PARTIALLY_PAID

        payment_fields = {
            'amount': amount,
            'method': data.method,
            'paid_at': timezone.now(),
            'recorded_by': principal.id,
        }

        with translate_db_errors('record payment'), transaction.atomic():
            payment = self.orders.append_payment(order, payment_fields, expected_version)
            self.audit.append(
                PAYMENT_RECORDED,
                principal,
                EntityRef('orders', str(order.id), order.order_id),
                {
                    'orderId': order.order_id,
                    'amount': f"{amount:.2f}",
                    'method': data.method,
                    'totalPaid': f"{new_total:.2f}",
                    'paymentStatus': order.payment_status,
                },
            )

        logger.info(
            "[PaymentLedger] %s: %s paid by %s, status=%s",
            order.order_id, amount, data.method, order.payment_status,
        )

        # 重新加载，payments 预取缓存里没有刚写的那一条
        order = self.orders.get_by_order_id(order.order_id)
        total_paid = self.total_paid(order)
        return PaymentResult(
            order=order,
            payment=payment,
            payment_status=order.payment_status,
            total_cost=total_cost,
            total_paid=total_paid,
            balance_due=max(Decimal('0.00'), total_cost - total_paid),
        )
