"""
Service 层的返回结构。

Order / Sample 直接返回 ORM 对象（serializers.py 负责转 JSON），
只有跨实体的「结果摘要」才用这里的 dataclass。
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from ..repositories.types import PatientSummary


@dataclass
class AccessionResult:
    order_id: str
    sample_position: int
    accession_number: str
    received_at: datetime
    status: str


@dataclass
class VerificationResult:
    order: Any                            # laborders.models.Order
    accession_number: str
    sample_status: str
    order_status: str
    verified_test_codes: list[str] = field(default_factory=list)
    ignored_test_codes: list[str] = field(default_factory=list)
    flagged_test_codes: list[str] = field(default_factory=list)
    abnormal_test_codes: list[str] = field(default_factory=list)


@dataclass
class PaymentResult:
    order: Any
    payment: Any                          # laborders.models.Payment
    payment_status: str
    total_cost: Decimal
    total_paid: Decimal
    balance_due: Decimal


@dataclass
class WorklistRow:
    order_id: str
    priority: str
    patient: PatientSummary
    sample_position: int
    specimen_type: str
    status: str
    accession_number: Optional[str]
    received_at: Optional[datetime]


@dataclass
class WorklistPage:
    rows: list[WorklistRow]
    total: int
    limit: int
    offset: int
