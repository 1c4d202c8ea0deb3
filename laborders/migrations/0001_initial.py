import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('mrn', models.CharField(max_length=32, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('dob', models.DateField()),
                ('gender', models.CharField(blank=True, default='', max_length=32)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'patients',
            },
        ),
        migrations.CreateModel(
            name='CatalogTest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('test_code', models.CharField(max_length=32, unique=True)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('tube_type', models.CharField(max_length=64)),
                ('reference_ranges', models.JSONField(blank=True, default=list)),
                ('reflex_rules', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'test_catalog',
            },
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(max_length=40)),
                ('actor_id', models.CharField(max_length=64)),
                ('actor_role', models.CharField(blank=True, default='', max_length=20)),
                ('entity_type', models.CharField(max_length=40)),
                ('entity_id', models.CharField(max_length=64)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'audit_events',
                'ordering': ['timestamp'],
                'indexes': [
                    models.Index(fields=['entity_type', 'entity_id'], name='audit_event_entity__6b1f0e_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_id', models.CharField(max_length=32, unique=True)),
                ('physician_id', models.CharField(blank=True, max_length=64, null=True)),
                ('icd10_code', models.CharField(max_length=20)),
                ('clinical_justification', models.TextField(blank=True, default='')),
                ('notes', models.TextField(blank=True, default='')),
                ('order_status', models.CharField(
                    choices=[('Pending', 'Pending'), ('In-Progress', 'In-Progress'),
                             ('Complete', 'Complete'), ('Cancelled', 'Cancelled')],
                    default='Pending', max_length=20)),
                ('priority', models.CharField(
                    choices=[('Routine', 'Routine'), ('STAT', 'STAT')], default='Routine', max_length=10)),
                ('billing_type', models.CharField(
                    choices=[('Insurance', 'Insurance'), ('Self-Pay', 'Self-Pay')],
                    default='Insurance', max_length=20)),
                ('payment_status', models.CharField(
                    choices=[('Unpaid', 'Unpaid'), ('Partially Paid', 'Partially Paid'),
                             ('Paid', 'Paid'), ('Waived', 'Waived')],
                    default='Unpaid', max_length=20)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_by', models.CharField(max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='laborders.patient')),
            ],
            options={
                'db_table': 'orders',
                'indexes': [
                    models.Index(fields=['patient', 'order_status', 'created_at'], name='orders_patient_5c2d1a_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('method', models.CharField(
                    choices=[('Cash', 'Cash'), ('Credit Card', 'Credit Card'), ('Other', 'Other')],
                    max_length=20)),
                ('paid_at', models.DateTimeField()),
                ('recorded_by', models.CharField(max_length=64)),
                ('order', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='laborders.order')),
            ],
            options={
                'db_table': 'payments',
                'ordering': ['paid_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Sample',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveSmallIntegerField()),
                ('specimen_type', models.CharField(max_length=64)),
                ('status', models.CharField(
                    choices=[('AwaitingCollection', 'Awaiting collection'), ('InLab', 'In lab'),
                             ('Testing', 'Testing'), ('AwaitingVerification', 'Awaiting verification'),
                             ('Verified', 'Verified'), ('Rejected', 'Rejected'),
                             ('Archived', 'Archived'), ('Disposed', 'Disposed')],
                    default='AwaitingCollection', max_length=32)),
                ('accession_number', models.CharField(blank=True, max_length=32, null=True, unique=True)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('received_by', models.CharField(blank=True, max_length=64, null=True)),
                ('order', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='samples', to='laborders.order')),
            ],
            options={
                'db_table': 'samples',
                'ordering': ['position'],
                'indexes': [
                    models.Index(fields=['status'], name='samples_status_8e4a7b_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('order', 'position'), name='uq_sample_position_per_order'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderedTest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('test_code', models.CharField(max_length=32)),
                ('name', models.CharField(max_length=200)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('reference_range', models.CharField(blank=True, default='', max_length=100)),
                ('range_low', models.FloatField(blank=True, null=True)),
                ('range_high', models.FloatField(blank=True, null=True)),
                ('range_units', models.CharField(blank=True, default='', max_length=32)),
                ('status', models.CharField(
                    choices=[('Pending', 'Pending'), ('InProgress', 'In progress'),
                             ('AwaitingVerification', 'Awaiting verification'),
                             ('Verified', 'Verified'), ('Cancelled', 'Cancelled')],
                    default='Pending', max_length=32)),
                ('result_value', models.JSONField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('is_abnormal', models.BooleanField(default=False)),
                ('flags', models.JSONField(blank=True, default=list)),
                ('verified_by', models.CharField(blank=True, max_length=64, null=True)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('sample', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name='tests', to='laborders.sample')),
            ],
            options={
                'db_table': 'ordered_tests',
                'ordering': ['id'],
            },
        ),
    ]
