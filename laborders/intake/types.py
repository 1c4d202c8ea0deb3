"""
Typed input records: 业务层（services/）唯一认识的输入格式。

所有 Parser 的 transform() 必须返回这里的某个结构。
Service 只消费这些 dataclass，永远不碰原始请求体。
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass
class CreateOrderInput:
    patient_id: str
    test_codes: list[str]
    icd10_code: str
    priority: str = 'Routine'
    billing_type: str = 'Insurance'
    physician_id: Optional[str] = None
    clinical_justification: str = ''
    notes: str = ''


@dataclass
class AccessionInput:
    order_id: str                 # human-readable, e.g. ORD-2026-7F3A9C21
    sample_position: int          # index of the sample inside the order


@dataclass
class ResultEntry:
    test_code: str
    value: Any                    # number or free text
    notes: Optional[str] = None


@dataclass
class VerifyResultsInput:
    accession_number: str
    results: list[ResultEntry] = field(default_factory=list)


@dataclass
class RecordPaymentInput:
    order_id: str
    amount: Decimal
    method: str


@dataclass
class WorklistQuery:
    statuses: Optional[list[str]] = None    # None → LAB_WORKLIST_DEFAULT_STATUSES
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class AuditSearchQuery:
    search_term: str              # order id / accession number / entity id
