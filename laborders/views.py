"""
HTTP 入口。

每个 view 只做四件事：
  1. 从 Authorization 头解析 Principal
  2. intake parser 解析 + 校验请求体
  3. 调 service
  4. serializer 输出

错误一律抛 BaseAppException，由 unified_exception_handler 统一转 JSON。
"""

from django.http import JsonResponse
from rest_framework.views import APIView

from .identity import principal_from_authorization
from .intake import get_parser
from .serializers import (
    serialize_accession_result,
    serialize_audit_search,
    serialize_order_detail,
    serialize_payment_result,
    serialize_verification_result,
    serialize_worklist_page,
)
from .services import (
    AccessioningService,
    AuditQueryService,
    EligibilityService,
    OrderCreationService,
    OrderQueryService,
    PaymentLedgerService,
    ResultVerificationService,
    WorklistService,
)


def _principal(request):
    return principal_from_authorization(request.headers.get('Authorization'))


class OrderCreateView(APIView):
    """POST /api/orders/"""

    def post(self, request):
        principal = _principal(request)
        data = get_parser('create_order', request.body).process()
        order = OrderCreationService().create_order(principal, data)
        return JsonResponse(serialize_order_detail(order), status=201)


class OrderDetailView(APIView):
    """GET /api/orders/<order_id>/"""

    def get(self, request, order_id):
        principal = _principal(request)
        order = OrderQueryService().get_order(principal, order_id)
        return JsonResponse(serialize_order_detail(order))


class OrderPaymentView(APIView):
    """POST /api/orders/<order_id>/payments/"""

    def post(self, request, order_id):
        principal = _principal(request)
        data = get_parser('record_payment', request.body, order_id=order_id).process()
        result = PaymentLedgerService().record_payment(principal, data)
        return JsonResponse(serialize_payment_result(result), status=201)


class SampleAccessionView(APIView):
    """POST /api/samples/accession/"""

    def post(self, request):
        principal = _principal(request)
        data = get_parser('accession', request.body).process()
        result = AccessioningService().accession_sample(principal, data)
        return JsonResponse(serialize_accession_result(result))


class ResultVerifyView(APIView):
    """POST /api/results/verify/"""

    def post(self, request):
        principal = _principal(request)
        data = get_parser('verify_results', request.body).process()
        result = ResultVerificationService().verify_results(principal, data)
        return JsonResponse(serialize_verification_result(result))


class WorklistView(APIView):
    """GET /api/worklist/?status=InLab,Testing&limit=50&offset=0"""

    def get(self, request):
        principal = _principal(request)
        query = get_parser('worklist', request.GET).process()
        page = WorklistService().build_worklist(principal, query)
        return JsonResponse(serialize_worklist_page(page))


class PatientEligibilityView(APIView):
    """POST /api/patients/<uuid>/verify-eligibility/ (202; the check itself runs in Celery)"""

    def post(self, request, patient_id):
        principal = _principal(request)
        body = EligibilityService().request_check(principal, str(patient_id))
        return JsonResponse(body, status=202)


class AuditLogSearchView(APIView):
    """GET /api/audit-logs/?searchTerm=ORD-2026-7F3A9C21 (manager only, newest first)"""

    def get(self, request):
        principal = _principal(request)
        query = get_parser('audit_search', request.GET).process()
        events = AuditQueryService().search(principal, query.search_term)
        return JsonResponse(serialize_audit_search(events))
