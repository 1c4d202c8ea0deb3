"""
EligibilityService 只负责投递 Celery task；task 本身用 eager 模式直接跑。
"""
import uuid
from unittest.mock import patch

import pytest

from laborders.exceptions import ForbiddenError, NotFoundError
from laborders.services import EligibilityService
from laborders.tasks import check_insurance_eligibility
from tests.conftest import PatientFactory


@pytest.mark.django_db
class TestRequestCheck:

    @patch('laborders.tasks.check_insurance_eligibility')
    def test_enqueues_and_accepts(self, mock_task, receptionist):
        patient = PatientFactory()

        body = EligibilityService().request_check(receptionist, str(patient.id))

        assert body['status'] == 'accepted'
        assert body['patient_id'] == str(patient.id)
        mock_task.delay.assert_called_once_with(str(patient.id), 'recep-1')

    @patch('laborders.tasks.check_insurance_eligibility')
    def test_unknown_patient(self, mock_task, manager):
        with pytest.raises(NotFoundError):
            EligibilityService().request_check(manager, str(uuid.uuid4()))
        mock_task.delay.assert_not_called()

    @patch('laborders.tasks.check_insurance_eligibility')
    def test_role(self, mock_task, technician):
        with pytest.raises(ForbiddenError):
            EligibilityService().request_check(technician, str(PatientFactory().id))
        mock_task.delay.assert_not_called()


@pytest.mark.django_db
class TestCheckInsuranceEligibilityTask:

    def test_simulated_check(self):
        patient = PatientFactory()
        result = check_insurance_eligibility.apply(args=(str(patient.id), 'recep-1')).get()

        assert result['status'] == 'checked'
        assert result['patient_id'] == str(patient.id)

    def test_missing_patient_skipped(self):
        missing = str(uuid.uuid4())
        result = check_insurance_eligibility.apply(args=(missing, 'recep-1')).get()
        assert result == {'patient_id': missing, 'status': 'skipped'}
