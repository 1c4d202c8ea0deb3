"""
Response serializers: ORM 对象 / service 结果 → JSON-able dict。

只负责「输出格式化」，不做任何解析或校验。
输入解析和校验在 laborders/intake/。
金额一律输出两位小数的字符串，避免 float 误差。
"""

from .services.payments import PaymentLedgerService


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return f"{value:.2f}"


def serialize_test(test):
    return {
        'test_code': test.test_code,
        'name': test.name,
        'price': _money(test.price),
        'reference_range': test.reference_range,
        'range_low': test.range_low,
        'range_high': test.range_high,
        'range_units': test.range_units,
        'status': test.status,
        'result_value': test.result_value,
        'notes': test.notes,
        'is_abnormal': test.is_abnormal,
        'flags': list(test.flags or []),
        'verified_by': test.verified_by,
        'verified_at': _iso(test.verified_at),
    }


def serialize_sample(sample):
    return {
        'sample_index': sample.position,
        'specimen_type': sample.specimen_type,
        'status': sample.status,
        'accession_number': sample.accession_number,
        'received_at': _iso(sample.received_at),
        'received_by': sample.received_by,
        'tests': [serialize_test(t) for t in sample.tests.all()],
    }


def serialize_payment(payment):
    return {
        'amount': _money(payment.amount),
        'method': payment.method,
        'paid_at': _iso(payment.paid_at),
        'recorded_by': payment.recorded_by,
    }


def serialize_order_detail(order):
    """Full aggregate plus the payment summary."""
    ledger = PaymentLedgerService()
    return {
        'order_id': order.order_id,
        'patient': {
            'id': str(order.patient.id),
            'name': order.patient.full_name,
            'mrn': order.patient.mrn,
        },
        'physician_id': order.physician_id,
        'icd10_code': order.icd10_code,
        'clinical_justification': order.clinical_justification,
        'notes': order.notes,
        'order_status': order.order_status,
        'priority': order.priority,
        'billing_type': order.billing_type,
        'payment_status': order.payment_status,
        'samples': [serialize_sample(s) for s in order.samples.all()],
        'payments': [serialize_payment(p) for p in order.payments.all()],
        'total_cost': _money(ledger.total_cost(order)),
        'total_paid': _money(ledger.total_paid(order)),
        'balance_due': _money(ledger.balance_due(order)),
        'version': order.version,
        'created_by': order.created_by,
        'created_at': _iso(order.created_at),
        'updated_at': _iso(order.updated_at),
    }


def serialize_accession_result(result):
    return {
        'order_id': result.order_id,
        'sample_index': result.sample_position,
        'accession_number': result.accession_number,
        'received_at': _iso(result.received_at),
        'status': result.status,
    }


def serialize_verification_result(result):
    return {
        'order_id': result.order.order_id,
        'accession_number': result.accession_number,
        'sample_status': result.sample_status,
        'order_status': result.order_status,
        'verified_test_codes': result.verified_test_codes,
        'ignored_test_codes': result.ignored_test_codes,
        'flagged_test_codes': result.flagged_test_codes,
        'abnormal_test_codes': result.abnormal_test_codes,
    }


def serialize_payment_result(result):
    return {
        'order_id': result.order.order_id,
        'payment': serialize_payment(result.payment),
        'payment_status': result.payment_status,
        'total_cost': _money(result.total_cost),
        'total_paid': _money(result.total_paid),
        'balance_due': _money(result.balance_due),
    }


def serialize_worklist_page(page):
    return {
        'count': page.total,
        'limit': page.limit,
        'offset': page.offset,
        'results': [
            {
                'order_id': row.order_id,
                'priority': row.priority,
                'patient': {
                    'id': row.patient.id,
                    'name': row.patient.full_name,
                    'mrn': row.patient.mrn,
                },
                'sample_index': row.sample_position,
                'specimen_type': row.specimen_type,
                'status': row.status,
                'accession_number': row.accession_number,
                'received_at': _iso(row.received_at),
            }
            for row in page.rows
        ],
    }


def serialize_audit_event(event):
    return {
        'id': str(event.id),
        'action': event.action,
        'actor_id': event.actor_id,
        'actor_role': event.actor_role,
        'entity_type': event.entity_type,
        'entity_id': event.entity_id,
        'details': event.details,
        'timestamp': _iso(event.timestamp),
    }


def serialize_audit_search(events):
    return {'results': [serialize_audit_event(e) for e in events]}
