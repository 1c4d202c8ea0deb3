"""
Collaborator 返回的标准结构。

Catalog / Patient 仓库只返回这些 dataclass，service 层不直接碰 CatalogTest / Patient ORM 对象。
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True)
class CatalogEntry:
    test_code: str
    name: str
    price: Decimal
    tube_type: str
    reference_ranges: list[Any] = field(default_factory=list)
    is_active: bool = True


@dataclass(frozen=True)
class PatientSummary:
    id: str
    full_name: str
    mrn: str


@dataclass(frozen=True)
class EntityRef:
    entity_type: str      # "orders" / "samples" / "patients"
    entity_id: str
    label: Optional[str] = None
