import uuid
from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = 'Pending', 'Pending'
    IN_PROGRESS = 'In-Progress', 'In-Progress'
    COMPLETE = 'Complete', 'Complete'
    CANCELLED = 'Cancelled', 'Cancelled'


class Priority(models.TextChoices):
    ROUTINE = 'Routine', 'Routine'
    STAT = 'STAT', 'STAT'


class BillingType(models.TextChoices):
    INSURANCE = 'Insurance', 'Insurance'
    SELF_PAY = 'Self-Pay', 'Self-Pay'


class PaymentStatus(models.TextChoices):
    UNPAID = 'Unpaid', 'Unpaid'
    PARTIALLY_PAID = 'Partially Paid', 'Partially Paid'
    PAID = 'Paid', 'Paid'
    WAIVED = 'Waived', 'Waived'


class SampleStatus(models.TextChoices):
    AWAITING_COLLECTION = 'AwaitingCollection', 'Awaiting collection'
    IN_LAB = 'InLab', 'In lab'
    TESTING = 'Testing', 'Testing'
    AWAITING_VERIFICATION = 'AwaitingVerification', 'Awaiting verification'
    VERIFIED = 'Verified', 'Verified'
    REJECTED = 'Rejected', 'Rejected'
    ARCHIVED = 'Archived', 'Archived'
    DISPOSED = 'Disposed', 'Disposed'


TERMINAL_SAMPLE_STATUSES = frozenset({
    SampleStatus.VERIFIED,
    SampleStatus.REJECTED,
    SampleStatus.ARCHIVED,
    SampleStatus.DISPOSED,
})

# Forward order of the sample lifecycle; Rejected sits outside it.
SAMPLE_STATUS_RANK = {
    SampleStatus.AWAITING_COLLECTION: 0,
    SampleStatus.IN_LAB: 1,
    SampleStatus.TESTING: 2,
    SampleStatus.AWAITING_VERIFICATION: 3,
    SampleStatus.VERIFIED: 4,
    SampleStatus.ARCHIVED: 5,
    SampleStatus.DISPOSED: 6,
}


class TestStatus(models.TextChoices):
    PENDING = 'Pending', 'Pending'
    IN_PROGRESS = 'InProgress', 'In progress'
    AWAITING_VERIFICATION = 'AwaitingVerification', 'Awaiting verification'
    VERIFIED = 'Verified', 'Verified'
    CANCELLED = 'Cancelled', 'Cancelled'

    # 防止 pytest 把它当测试类收集
    __test__ = False


class PaymentMethod(models.TextChoices):
    CASH = 'Cash', 'Cash'
    CREDIT_CARD = 'Credit Card', 'Credit Card'
    OTHER = 'Other', 'Other'


class Patient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    mrn = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    dob = models.DateField()
    gender = models.CharField(max_length=32, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients'

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


class CatalogTest(models.Model):
    """
    Orderable test definition.

    reference_ranges is a list of
    {"ageMin", "ageMax", "gender", "rangeLow", "rangeHigh", "units"} dicts
    (legacy rows may hold "low - high units" strings instead).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    test_code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    price = models.DecimalField(max_digits=10, decimal_places=2)
    tube_type = models.CharField(max_length=64)
    reference_ranges = models.JSONField(default=list, blank=True)
    reflex_rules = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'test_catalog'


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_id = models.CharField(max_length=32, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='orders')
    physician_id = models.CharField(max_length=64, blank=True, null=True)
    icd10_code = models.CharField(max_length=20)
    clinical_justification = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')
    order_status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.ROUTINE)
    billing_type = models.CharField(max_length=20, choices=BillingType.choices, default=BillingType.INSURANCE)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    # 乐观锁：每次写 samples / payments 都 +1
    version = models.PositiveIntegerField(default=1)
    created_by = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        indexes = [
            models.Index(fields=['patient', 'order_status', 'created_at'], name='orders_patient_5c2d1a_idx'),
        ]


class Sample(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='samples')
    position = models.PositiveSmallIntegerField()
    specimen_type = models.CharField(max_length=64)
    status = models.CharField(
        max_length=32, choices=SampleStatus.choices, default=SampleStatus.AWAITING_COLLECTION,
    )
    accession_number = models.CharField(max_length=32, unique=True, blank=True, null=True)
    received_at = models.DateTimeField(blank=True, null=True)
    received_by = models.CharField(max_length=64, blank=True, null=True)

    class Meta:
        db_table = 'samples'
        ordering = ['position']
        constraints = [
            models.UniqueConstraint(fields=['order', 'position'], name='uq_sample_position_per_order'),
        ]
        indexes = [
            models.Index(fields=['status'], name='samples_status_8e4a7b_idx'),
        ]


class OrderedTest(models.Model):
    """Catalog snapshot + result for one test inside a sample."""

    sample = models.ForeignKey(Sample, on_delete=models.CASCADE, related_name='tests')
    test_code = models.CharField(max_length=32)
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    reference_range = models.CharField(max_length=100, blank=True, default='')
    range_low = models.FloatField(blank=True, null=True)
    range_high = models.FloatField(blank=True, null=True)
    range_units = models.CharField(max_length=32, blank=True, default='')
    status = models.CharField(max_length=32, choices=TestStatus.choices, default=TestStatus.PENDING)
    result_value = models.JSONField(blank=True, null=True)
    notes = models.TextField(blank=True, default='')
    is_abnormal = models.BooleanField(default=False)
    flags = models.JSONField(default=list, blank=True)
    verified_by = models.CharField(max_length=64, blank=True, null=True)
    verified_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'ordered_tests'
        ordering = ['id']


class Payment(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    paid_at = models.DateTimeField()
    recorded_by = models.CharField(max_length=64)

    class Meta:
        db_table = 'payments'
        ordering = ['paid_at', 'id']


class AuditEvent(models.Model):
    """Append-only. Rows are never updated or deleted."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField(max_length=40)
    actor_id = models.CharField(max_length=64)
    actor_role = models.CharField(max_length=20, blank=True, default='')
    entity_type = models.CharField(max_length=40)
    entity_id = models.CharField(max_length=64)
    details = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_events'
        ordering = ['timestamp']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_event_entity__6b1f0e_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("AuditEvent rows are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("AuditEvent rows are append-only")
