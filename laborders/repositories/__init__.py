from .base import AuditLog, AuditSink, CatalogRepository, OrderRepository, PatientRepository
from .orm import (
    DjangoAuditLog,
    DjangoAuditSink,
    DjangoCatalogRepository,
    DjangoOrderRepository,
    DjangoPatientRepository,
    translate_db_errors,
)
from .types import CatalogEntry, EntityRef, PatientSummary

__all__ = [
    'AuditLog',
    'AuditSink',
    'CatalogRepository',
    'OrderRepository',
    'PatientRepository',
    'DjangoAuditLog',
    'DjangoAuditSink',
    'DjangoCatalogRepository',
    'DjangoOrderRepository',
    'DjangoPatientRepository',
    'translate_db_errors',
    'CatalogEntry',
    'EntityRef',
    'PatientSummary',
]
