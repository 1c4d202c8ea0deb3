import logging

from ..exceptions import NotFoundError
from ..identity import ELIGIBILITY_ROLES, require_role
from ..repositories import DjangoPatientRepository

logger = logging.getLogger(__name__)


class EligibilityService:
    """Fire-and-forget: enqueue the check and report acceptance, never the outcome."""

    def __init__(self, patients=None):
        self.patients = patients or DjangoPatientRepository()

    def request_check(self, principal, patient_id):
        require_role(principal, ELIGIBILITY_ROLES, 'request eligibility checks')

        patient = self.patients.get(patient_id)
        if patient is None:
            raise NotFoundError(
                message=f"Patient {patient_id} not found.",
                code='PATIENT_NOT_FOUND',
                detail={'patient_id': str(patient_id)},
            )

        # 延迟导入，避免 services ↔ tasks 循环依赖
        from laborders.tasks import check_insurance_eligibility
        check_insurance_eligibility.delay(patient.id, principal.id)

        logger.info("[Eligibility] check enqueued for patient %s by %s", patient.id, principal.id)
        return {
            'status': 'accepted',
            'patient_id': patient.id,
            'message': 'Eligibility check initiated.',
        }
