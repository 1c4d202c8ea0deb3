import logging

from django.conf import settings

from ..exceptions import ValidationError
from ..identity import AUDIT_SEARCH_ROLES, require_role
from ..repositories import DjangoAuditLog

logger = logging.getLogger(__name__)


class AuditQueryService:
    """Manager-only lookup of the audit trail by order id, accession number or entity id."""

    def __init__(self, audit_log=None):
        self.audit_log = audit_log or DjangoAuditLog()

    def search(self, principal, term):
        require_role(principal, AUDIT_SEARCH_ROLES, 'search the audit log')

        term = (term or '').strip()
        if not term:
            raise ValidationError(
                message='A search term is required.',
                code='SEARCH_TERM_REQUIRED',
                detail={'field': 'searchTerm'},
            )

        limit = getattr(settings, 'LAB_AUDIT_SEARCH_LIMIT', 50)
        events = self.audit_log.search(term, limit)

        logger.info("[AuditQuery] %r by %s: %d event(s)", term, principal.id, len(events))
        return events
