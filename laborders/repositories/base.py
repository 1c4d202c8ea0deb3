"""
Collaborator 抽象基类。

Service 只依赖这里的接口，默认实现见 orm.py（Django ORM）。
测试可以注入自己的实现（例如记录调用次数的 AuditSink）。
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from .types import CatalogEntry, EntityRef, PatientSummary


class CatalogRepository(ABC):

    @abstractmethod
    def get_many(self, test_codes: Iterable[str]) -> dict[str, CatalogEntry]:
        """Return entries keyed by test code; unknown codes are simply absent."""


class PatientRepository(ABC):

    @abstractmethod
    def get(self, patient_id: str) -> Optional[PatientSummary]:
        """Return the patient summary, or None if no such patient exists."""


class AuditSink(ABC):

    @abstractmethod
    def append(self, action: str, actor, entity_ref: EntityRef, details: dict) -> None:
        """
        Append one event. Called synchronously, inside the caller's transaction,
        before the operation reports success.
        """


class AuditLog(ABC):

    @abstractmethod
    def search(self, term: str, limit: int) -> list:
        """
        Events whose details.orderId, details.accessionNumber or entity_id
        equals term exactly, newest first, at most limit rows.
        """


class OrderRepository(ABC):
    """
    Persistence for the Order aggregate (order + samples + tests + payments).

    Every write that touches samples or payments is guarded: either by the
    sample's current status (accession_sample) or by the order version
    (save_samples / append_payment). A guard miss raises ConflictError.
    """

    @abstractmethod
    def create(self, order_fields: dict, samples: list[dict]):
        """Insert an order with its samples and their tests; returns the order."""

    @abstractmethod
    def get_by_order_id(self, order_id: str):
        """Load the full aggregate by human-readable id, or None."""

    @abstractmethod
    def get_by_accession(self, accession_number: str):
        """Load the full aggregate owning the sample with this accession number, or None."""

    @abstractmethod
    def accession_sample(self, sample, accession_number: str, received_at: datetime, received_by: str) -> None:
        """
        Move the sample AwaitingCollection → InLab only if it is still
        AwaitingCollection in storage; otherwise raise ConflictError.
        """

    @abstractmethod
    def save_samples(self, order, expected_version: int) -> None:
        """Write every sample and test of the in-memory aggregate back, version-checked."""

    @abstractmethod
    def append_payment(self, order, payment_fields: dict, expected_version: int):
        """Insert a payment and write order.payment_status, version-checked."""

    @abstractmethod
    def find_most_recent_complete_for_patient(self, patient_id, exclude_order_pk=None):
        """Most recent Complete order of the patient (by created_at), or None."""

    @abstractmethod
    def find_samples_by_status(self, statuses: Iterable[str]) -> list:
        """All samples in the given statuses, with their order and patient loaded."""
