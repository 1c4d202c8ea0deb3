from django.urls import path

from .views import (
    AuditLogSearchView,
    OrderCreateView,
    OrderDetailView,
    OrderPaymentView,
    PatientEligibilityView,
    ResultVerifyView,
    SampleAccessionView,
    WorklistView,
)

urlpatterns = [
    path('orders/', OrderCreateView.as_view(), name='order-create'),
    path('orders/<str:order_id>/', OrderDetailView.as_view(), name='order-detail'),
    path('orders/<str:order_id>/payments/', OrderPaymentView.as_view(), name='order-payments'),
    path('samples/accession/', SampleAccessionView.as_view(), name='sample-accession'),
    path('results/verify/', ResultVerifyView.as_view(), name='results-verify'),
    path('worklist/', WorklistView.as_view(), name='worklist'),
    path('patients/<uuid:patient_id>/verify-eligibility/', PatientEligibilityView.as_view(),
         name='patient-verify-eligibility'),
    path('audit-logs/', AuditLogSearchView.as_view(), name='audit-log-search'),
]
