import logging

from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=10,   # 初始重试延迟（秒），指数退避：10s → 20s → 40s
    acks_late=True,
    reject_on_worker_lost=True,
)
def check_insurance_eligibility(self, patient_id: str, requested_by: str):
    """
    模拟的保险资格核查。

    No payer is contacted: the task loads the patient, logs the check and
    returns a summary. It never reads or writes orders.
    """
    from laborders.models import Patient

    logger.info(
        "[Celery][check_insurance_eligibility] patient=%s requested_by=%s (attempt %d/%d)",
        patient_id, requested_by, self.request.retries + 1, self.max_retries + 1,
    )

    try:
        patient = Patient.objects.get(pk=patient_id)
    except Patient.DoesNotExist:
        logger.error("[Celery] Patient %s 不存在，跳过", patient_id)
        return {'patient_id': patient_id, 'status': 'skipped'}
    except DatabaseError as exc:
        if self.request.retries < self.max_retries:
            countdown = self.default_retry_delay * (2 ** self.request.retries)
            logger.warning(
                "[Celery] patient=%s 读取失败，%ds 后重试: %s", patient_id, countdown, exc,
            )
            raise self.retry(exc=exc, countdown=countdown)
        logger.error("[Celery] patient=%s 已达最大重试次数", patient_id)
        raise

    logger.info("[Celery] Simulated eligibility check for %s (%s): active coverage", patient.full_name, patient.mrn)
    return {
        'patient_id': str(patient.id),
        'status': 'checked',
        'coverage': 'active',
        'checked_at': timezone.now().isoformat(),
    }
