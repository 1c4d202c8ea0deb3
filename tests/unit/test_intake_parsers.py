"""
Unit tests for the intake parser system.

覆盖：
- 工厂函数 get_parser
- 各 Parser 的 transform / validate
- 畸形请求体（非 JSON、非 object）
"""
import json
from decimal import Decimal

import pytest
from django.http import QueryDict

from laborders.exceptions import ValidationError
from laborders.intake import get_parser
from laborders.intake.parsers import (
    AccessionParser,
    AuditSearchParser,
    CreateOrderParser,
    RecordPaymentParser,
    VerifyResultsParser,
    WorklistParser,
)


def _errors(exc_info):
    return {e['field'] for e in exc_info.value.detail['errors']}


class TestGetParser:

    @pytest.mark.parametrize('operation, cls', [
        ('create_order', CreateOrderParser),
        ('accession', AccessionParser),
        ('verify_results', VerifyResultsParser),
        ('record_payment', RecordPaymentParser),
        ('worklist', WorklistParser),
        ('audit_search', AuditSearchParser),
    ])
    def test_registry(self, operation, cls):
        assert isinstance(get_parser(operation, b'{}'), cls)

    def test_unknown_operation(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('delete_everything', b'{}')
        assert exc_info.value.code == 'UNKNOWN_OPERATION'


class TestMalformedBody:

    def test_not_json(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('accession', b'{not json').process()
        assert exc_info.value.code == 'MALFORMED_JSON'

    def test_not_an_object(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('accession', json.dumps([1, 2])).process()
        assert exc_info.value.code == 'MALFORMED_BODY'


class TestCreateOrderParser:

    def test_happy_path(self):
        record = get_parser('create_order', json.dumps({
            'patientId': 'p-1',
            'testCodes': ['glu', 'CBC', 'GLU'],
            'icd10Code': 'e11.9',
            'priority': 'STAT',
            'billingType': 'Self-Pay',
            'clinicalJustification': 'Suspected DKA',
        })).process()

        assert record.test_codes == ['GLU', 'CBC']
        assert record.icd10_code == 'E11.9'
        assert record.priority == 'STAT'
        assert record.billing_type == 'Self-Pay'
        assert record.physician_id is None

    def test_defaults(self):
        record = get_parser('create_order', {
            'patientId': 'p-1', 'testCodes': ['GLU'], 'icd10Code': 'R73.09',
        }).process()
        assert record.priority == 'Routine'
        assert record.billing_type == 'Insurance'

    def test_collects_all_field_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('create_order', {
                'testCodes': [],
                'icd10Code': 'diabetes',
                'priority': 'ASAP',
            }).process()
        assert _errors(exc_info) == {'patientId', 'testCodes', 'icd10Code', 'priority'}


class TestAccessionParser:

    def test_happy_path(self):
        record = get_parser('accession', {'orderId': 'ORD-2026-ABCD1234', 'sampleIndex': 1}).process()
        assert record.order_id == 'ORD-2026-ABCD1234'
        assert record.sample_position == 1

    def test_negative_and_non_integer_index(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('accession', {'orderId': 'ORD-1', 'sampleIndex': -1}).process()
        assert _errors(exc_info) == {'sampleIndex'}

        with pytest.raises(ValidationError):
            get_parser('accession', {'orderId': 'ORD-1', 'sampleIndex': '0'}).process()


class TestVerifyResultsParser:

    def test_entries(self):
        record = get_parser('verify_results', {
            'accessionNumber': 'ACC-2026-K3Q9ZD',
            'results': [
                {'testCode': 'glu', 'value': '85', 'notes': 'fasting'},
                {'testCode': 'UA', 'value': 'trace'},
            ],
        }).process()
        assert [r.test_code for r in record.results] == ['GLU', 'UA']
        assert record.results[0].notes == 'fasting'
        assert record.results[1].notes is None

    def test_empty_batch_is_valid(self):
        record = get_parser('verify_results', {'accessionNumber': 'ACC-1', 'results': []}).process()
        assert record.results == []

    @pytest.mark.parametrize('results, field', [
        ('GLU=85', 'results'),
        (['GLU'], 'results[0]'),
        ([{'value': 85}], 'results[0].testCode'),
        ([{'testCode': 'GLU'}], 'results[0].value'),
    ])
    def test_malformed_batch(self, results, field):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('verify_results', {'accessionNumber': 'ACC-1', 'results': results}).process()
        assert field in _errors(exc_info)


class TestRecordPaymentParser:

    def test_order_id_from_context(self):
        record = get_parser('record_payment', {'amount': 40, 'method': 'Cash'}, order_id='ORD-1').process()
        assert record.order_id == 'ORD-1'
        assert record.amount == Decimal('40')

    def test_string_amount(self):
        record = get_parser('record_payment', {'amount': '12.50', 'method': 'Credit Card'}).process()
        assert record.amount == Decimal('12.50')

    @pytest.mark.parametrize('amount', [0, -5, 'abc', None, True])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('record_payment', {'amount': amount, 'method': 'Cash'}).process()
        assert _errors(exc_info) == {'amount'}

    @pytest.mark.parametrize('amount', ['1e30', 1e30, '100000000.00'])
    def test_amount_above_column_limit(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('record_payment', {'amount': amount, 'method': 'Cash'}).process()
        assert _errors(exc_info) == {'amount'}

    def test_largest_storable_amount(self):
        record = get_parser('record_payment', {'amount': '99999999.99', 'method': 'Cash'}).process()
        assert record.amount == Decimal('99999999.99')

    def test_invalid_method(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('record_payment', {'amount': 5, 'method': 'Bitcoin'}).process()
        assert _errors(exc_info) == {'method'}


class TestWorklistParser:

    def test_query_string(self):
        record = get_parser('worklist', QueryDict('status=InLab,Testing&limit=10&offset=5')).process()
        assert record.statuses == ['InLab', 'Testing']
        assert record.limit == 10
        assert record.offset == 5

    def test_defaults(self):
        record = get_parser('worklist', QueryDict('')).process()
        assert record.statuses is None
        assert record.limit is None
        assert record.offset == 0

    def test_bad_numbers(self):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('worklist', QueryDict('limit=ten&offset=-1')).process()
        assert _errors(exc_info) == {'limit', 'offset'}


class TestAuditSearchParser:

    def test_search_term(self):
        record = get_parser('audit_search', QueryDict('searchTerm=ORD-2026-ABCD1234')).process()
        assert record.search_term == 'ORD-2026-ABCD1234'

    @pytest.mark.parametrize('query', ['', 'searchTerm=', 'searchTerm=%20%20'])
    def test_search_term_required(self, query):
        with pytest.raises(ValidationError) as exc_info:
            get_parser('audit_search', QueryDict(query)).process()
        assert _errors(exc_info) == {'searchTerm'}
