"""
具体 Parser 实现，一个操作一个类。

已注册操作：
  create_order    -> CreateOrderParser     (POST /api/orders/)
  accession       -> AccessionParser       (POST /api/samples/accession/)
  verify_results  -> VerifyResultsParser   (POST /api/results/verify/)
  record_payment  -> RecordPaymentParser   (POST /api/orders/<order_id>/payments/)
  worklist        -> WorklistParser        (GET  /api/worklist/?status=&limit=&offset=)
  audit_search    -> AuditSearchParser     (GET  /api/audit-logs/?searchTerm=)

请求体沿用前端的 camelCase 字段名。
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from ..models import BillingType, PaymentMethod, Priority
from .base import ICD10_RE, BaseIntakeParser
from .types import (
    AccessionInput,
    AuditSearchQuery,
    CreateOrderInput,
    RecordPaymentInput,
    ResultEntry,
    VerifyResultsInput,
    WorklistQuery,
)


# ── CreateOrderParser ──────────────────────────────────────────────────────
#
# {
#   "patientId":   "3f1c...",
#   "physicianId": "dr-42",                    ← 可选
#   "icd10Code":   "E11.9",
#   "priority":    "STAT",                     ← Routine | STAT，默认 Routine
#   "clinicalJustification": "Suspected DKA",  ← STAT 时必填（service 层检查）
#   "billingType": "Self-Pay",                 ← Insurance | Self-Pay，默认 Insurance
#   "testCodes":   ["GLU", "CBC", "GLU"],      ← 去重后保持首次出现顺序
#   "notes":       "fasting"
# }

class CreateOrderParser(BaseIntakeParser):
    operation = "create_order"

    def transform(self) -> CreateOrderInput:
        raw = self._parsed

        icd10_code = self._str("icd10Code")
        if icd10_code and not ICD10_RE.match(icd10_code):
            self.add_error("icd10Code", "icd10Code must be valid ICD-10 format (e.g. E11.9, R73.09).")

        test_codes = []
        raw_codes = raw.get("testCodes")
        if not isinstance(raw_codes, list) or not raw_codes:
            self.add_error("testCodes", "At least one test must be selected.")
        else:
            for i, code in enumerate(raw_codes):
                if not isinstance(code, str) or not code.strip():
                    self.add_error(f"testCodes[{i}]", f"Invalid test code: {code!r}.")
                    continue
                code = code.strip().upper()
                if code not in test_codes:
                    test_codes.append(code)

        physician_id = raw.get("physicianId")
        if physician_id is not None and not isinstance(physician_id, str):
            self.add_error("physicianId", "physicianId must be a string.")
            physician_id = None

        return CreateOrderInput(
            patient_id=self._str("patientId"),
            test_codes=test_codes,
            icd10_code=icd10_code.upper(),
            priority=self._choice("priority", Priority.values, Priority.ROUTINE.value),
            billing_type=self._choice("billingType", BillingType.values, BillingType.INSURANCE.value),
            physician_id=physician_id or None,
            clinical_justification=self._str("clinicalJustification", required=False),
            notes=self._str("notes", required=False),
        )


# ── AccessionParser ────────────────────────────────────────────────────────
#
# { "orderId": "ORD-2026-7F3A9C21", "sampleIndex": 0 }

class AccessionParser(BaseIntakeParser):
    operation = "accession"

    def transform(self) -> AccessionInput:
        position = self._int("sampleIndex")
        if position < 0:
            self.add_error("sampleIndex", "sampleIndex must not be negative.")
        return AccessionInput(order_id=self._str("orderId"), sample_position=position)


# ── VerifyResultsParser ────────────────────────────────────────────────────
#
# {
#   "accessionNumber": "ACC-2026-K3Q9ZD",
#   "results": [
#     {"testCode": "GLU", "value": "85", "notes": "fasting"},
#     {"testCode": "UA",  "value": "trace"}
#   ]
# }
#
# 只有「整批格式错误」才报错；testCode 在样本里找不到的条目由 service 静默忽略。

class VerifyResultsParser(BaseIntakeParser):
    operation = "verify_results"

    def transform(self) -> VerifyResultsInput:
        accession_number = self._str("accessionNumber")
        raw_results = self._parsed.get("results")
        entries = []

        if not isinstance(raw_results, list):
            self.add_error("results", "results must be a list.")
            raw_results = []

        for i, item in enumerate(raw_results):
            if not isinstance(item, dict):
                self.add_error(f"results[{i}]", "Each result must be an object.")
                continue
            code = item.get("testCode")
            if not isinstance(code, str) or not code.strip():
                self.add_error(f"results[{i}].testCode", "testCode is required.")
                continue
            if "value" not in item:
                self.add_error(f"results[{i}].value", "value is required.")
                continue
            notes = item.get("notes")
            if notes is not None and not isinstance(notes, str):
                self.add_error(f"results[{i}].notes", "notes must be a string.")
                continue
            entries.append(ResultEntry(test_code=code.strip().upper(), value=item["value"], notes=notes))

        return VerifyResultsInput(accession_number=accession_number, results=entries)


# ── RecordPaymentParser ────────────────────────────────────────────────────
#
# order_id 来自 URL，请求体只有 { "amount": 40.00, "method": "Cash" }
# amount 上限跟 payments.amount 列一致（max_digits=10, decimal_places=2）

MAX_PAYMENT_AMOUNT = Decimal("99999999.99")


class RecordPaymentParser(BaseIntakeParser):
    operation = "record_payment"

    def __init__(self, raw_body: Any, order_id: str = ""):
        super().__init__(raw_body)
        self._order_id = order_id

    def transform(self) -> RecordPaymentInput:
        amount = self._parse_amount(self._parsed.get("amount"))
        method = self._parsed.get("method")
        if method not in PaymentMethod.values:
            self.add_error("method", f"method must be one of {PaymentMethod.values}.")

        return RecordPaymentInput(order_id=self._order_id, amount=amount, method=method)

    def _parse_amount(self, value: Any) -> Decimal:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            self.add_error("amount", "amount must be a number.")
            return Decimal("0")
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            self.add_error("amount", "amount must be a number.")
            return Decimal("0")
        if not amount.is_finite() or amount <= 0:
            self.add_error("amount", "Payment amount must be positive.")
        elif amount > MAX_PAYMENT_AMOUNT:
            self.add_error("amount", f"amount must not exceed {MAX_PAYMENT_AMOUNT}.")
        return amount


# ── WorklistParser ─────────────────────────────────────────────────────────
#
# 输入是 query string（QueryDict），值全是字符串：
#   ?status=InLab,Testing&limit=50&offset=0

class WorklistParser(BaseIntakeParser):
    operation = "worklist"

    def transform(self) -> WorklistQuery:
        raw = self._parsed

        status_param = raw.get("status")
        statuses = None
        if status_param:
            statuses = [s.strip() for s in str(status_param).split(",") if s.strip()]

        return WorklistQuery(
            statuses=statuses,
            limit=self._query_int("limit", default=None),
            offset=self._query_int("offset", default=0),
        )

    def _query_int(self, key: str, default):
        value = self._parsed.get(key)
        if value in (None, ""):
            return default
        try:
            number = int(value)
        except (TypeError, ValueError):
            self.add_error(key, f"{key} must be an integer.")
            return default
        if number < 0:
            self.add_error(key, f"{key} must not be negative.")
            return default
        return number


# ── AuditSearchParser ──────────────────────────────────────────────────────
#
#   ?searchTerm=ORD-2026-7F3A9C21

class AuditSearchParser(BaseIntakeParser):
    operation = "audit_search"

    def transform(self) -> AuditSearchQuery:
        return AuditSearchQuery(search_term=self._str("searchTerm"))
