"""
Shared fixtures for all tests.

factory-boy factories live here so both unit/ and integration/ can import them.
"""
import pytest
from datetime import date
from decimal import Decimal

import factory
from django.test import Client
from django.utils import timezone

from laborders.identity import MANAGER, PATIENT, PHYSICIAN, RECEPTIONIST, TECHNICIAN, Principal, encode_principal
from laborders.models import (
    CatalogTest,
    Order,
    OrderedTest,
    Patient,
    Payment,
    Sample,
    SampleStatus,
    TestStatus,
)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class PatientFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Patient

    mrn = factory.Sequence(lambda n: f'MRN{100000 + n}')
    first_name = 'John'
    last_name = 'Doe'
    dob = date(1990, 1, 15)


class CatalogTestFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CatalogTest
        django_get_or_create = ('test_code',)

    test_code = factory.Sequence(lambda n: f'T{n:03d}')
    name = factory.LazyAttribute(lambda o: f'Test {o.test_code}')
    price = Decimal('25.00')
    tube_type = 'Gold Top'
    reference_ranges = factory.LazyFunction(
        lambda: [{'ageMin': 0, 'ageMax': 120, 'gender': 'any', 'rangeLow': 70, 'rangeHigh': 99, 'units': 'mg/dL'}]
    )
    is_active = True


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_id = factory.Sequence(lambda n: f'ORD-2026-{n:08d}')
    patient = factory.SubFactory(PatientFactory)
    icd10_code = 'E11.9'
    created_by = 'recep-1'


class SampleFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Sample

    order = factory.SubFactory(OrderFactory)
    position = 0
    specimen_type = 'Gold Top'
    status = SampleStatus.AWAITING_COLLECTION


class OrderedTestFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderedTest

    sample = factory.SubFactory(SampleFactory)
    test_code = 'GLU'
    name = 'Glucose'
    price = Decimal('25.00')
    reference_range = '70 - 99 mg/dL'
    range_low = 70.0
    range_high = 99.0
    range_units = 'mg/dL'
    status = TestStatus.PENDING


class PaymentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Payment

    order = factory.SubFactory(OrderFactory)
    amount = Decimal('10.00')
    method = 'Cash'
    paid_at = factory.LazyFunction(timezone.now)
    recorded_by = 'recep-1'


def accessioned_sample(order, position=0, accession_number=None, received_at=None, **kwargs):
    """Sample already in the lab, with an accession number."""
    return SampleFactory(
        order=order,
        position=position,
        status=kwargs.pop('status', SampleStatus.IN_LAB),
        accession_number=accession_number or f'ACC-2026-{order.order_id[-4:]}{position:02d}',
        received_at=received_at or timezone.now(),
        received_by='tech-1',
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def receptionist():
    return Principal(id='recep-1', role=RECEPTIONIST)


@pytest.fixture
def technician():
    return Principal(id='tech-1', role=TECHNICIAN)


@pytest.fixture
def manager():
    return Principal(id='mgr-1', role=MANAGER)


@pytest.fixture
def physician():
    return Principal(id='dr-1', role=PHYSICIAN)


@pytest.fixture
def patient_principal():
    return Principal(id='pat-1', role=PATIENT)


@pytest.fixture
def catalog():
    """GLU + LIPID share a Gold Top tube, CBC goes in Lavender Top."""
    return {
        'GLU': CatalogTestFactory(
            test_code='GLU', name='Glucose', price=Decimal('25.00'), tube_type='Gold Top',
        ),
        'LIPID': CatalogTestFactory(
            test_code='LIPID', name='Lipid Panel', price=Decimal('45.00'), tube_type='Gold Top',
            reference_ranges=['0 - 200 mg/dL'],
        ),
        'CBC': CatalogTestFactory(
            test_code='CBC', name='Complete Blood Count', price=Decimal('30.00'), tube_type='Lavender Top',
            reference_ranges=[{'rangeLow': 4.5, 'rangeHigh': 11.0, 'units': 'K/uL'}],
        ),
    }


@pytest.fixture
def api_client():
    """Django test client for integration tests."""
    return Client()


@pytest.fixture
def auth_header():
    """auth_header(principal) → kwargs for Client.get/post."""
    def _header(principal):
        return {'HTTP_AUTHORIZATION': encode_principal(principal)}
    return _header
