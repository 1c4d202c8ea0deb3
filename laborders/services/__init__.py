from .accessioning import AccessioningService, generate_accession_number
from .audit import AuditQueryService
from .eligibility import EligibilityService
from .orders import OrderCreationService, OrderQueryService, generate_order_id
from .payments import PaymentLedgerService
from .verification import ResultVerificationService
from .worklist import WorklistService

__all__ = [
    'AccessioningService',
    'AuditQueryService',
    'EligibilityService',
    'OrderCreationService',
    'OrderQueryService',
    'PaymentLedgerService',
    'ResultVerificationService',
    'WorklistService',
    'generate_accession_number',
    'generate_order_id',
]
