"""
统一异常处理器。

挂到 DRF 的 EXCEPTION_HANDLER setting 上。
所有响应（无论成功还是失败）前端都能用同一套逻辑判断：
  response.type 存在  → 出问题了
  没有 type 字段      → 成功

统一错误响应格式：
{
    "type":    "validation_error" | "not_found" | "forbidden" | "conflict" | "internal_error",
    "code":    "PAYMENT_EXCEEDS_BALANCE",
    "message": "Payment of $45.00 exceeds the remaining balance of $40.00 by $5.00.",
    "detail":  { ... }  // 可选
}
"""

import logging

from rest_framework.views import exception_handler as drf_default_handler
from rest_framework.exceptions import ParseError, ValidationError as DRFValidationError
from django.http import JsonResponse

from .exceptions import BaseAppException

logger = logging.getLogger(__name__)


def unified_exception_handler(exc, context):
    """
    DRF exception handler entry point.

    优先级：
    1. BaseAppException 及其子类 → 统一格式
    2. DRF 自带的 ValidationError / ParseError（请求体不是合法 JSON 等）→ 转成统一格式
    3. 其他异常 → 交给 DRF 默认处理
    """

    # --- 1. 我们自己的异常体系 ---
    if isinstance(exc, BaseAppException):
        if exc.http_status >= 500:
            logger.error("[API] %s: %s", exc.code, exc.message)
        body = {
            'type': exc.type,
            'code': exc.code,
            'message': exc.message,
        }
        if exc.detail is not None:
            body['detail'] = exc.detail
        return JsonResponse(body, status=exc.http_status)

    # --- 2. DRF 自带的校验 / 解析错误 ---
    if isinstance(exc, (DRFValidationError, ParseError)):
        body = {
            'type': 'validation_error',
            'code': 'VALIDATION_ERROR',
            'message': 'Request validation failed',
            'detail': exc.detail,
        }
        return JsonResponse(body, status=400)

    # --- 3. 其他的交给 DRF 默认处理 ---
    return drf_default_handler(exc, context)
