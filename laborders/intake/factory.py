"""
工厂函数：根据操作名返回对应 Parser。

新增操作只需：
  1. 在 parsers.py 新建 Parser 类
  2. 在此处 _REGISTRY 加一行
  不需要修改任何业务代码。
"""

from typing import Any

from ..exceptions import ValidationError
from .base import BaseIntakeParser


# ── 注册表 ──────────────────────────────────────────────────────────────────
# key: 操作名（views.py 里写死）
# value: Parser 类（未实例化）
def _build_registry() -> dict[str, type[BaseIntakeParser]]:
    # 延迟导入，避免循环依赖
    from .parsers import (
        AccessionParser,
        AuditSearchParser,
        CreateOrderParser,
        RecordPaymentParser,
        VerifyResultsParser,
        WorklistParser,
    )

    return {
        "create_order":   CreateOrderParser,
        "accession":      AccessionParser,
        "verify_results": VerifyResultsParser,
        "record_payment": RecordPaymentParser,
        "worklist":       WorklistParser,
        "audit_search":   AuditSearchParser,
    }


def get_parser(operation: str, raw_body: Any, **context: Any) -> BaseIntakeParser:
    """
    根据 operation 返回已实例化的 Parser。

    Args:
        operation: 操作名，例如 "create_order"、"verify_results"
        raw_body:  原始请求体（bytes / str / dict / QueryDict）
        context:   Parser 需要的额外参数，例如 record_payment 的 order_id

    Raises:
        ValidationError: 未知的 operation
    """
    registry = _build_registry()
    parser_cls = registry.get(operation)

    if parser_cls is None:
        raise ValidationError(
            message=f"Unknown operation: {operation!r}.",
            code="UNKNOWN_OPERATION",
            detail={"known_operations": list(registry.keys())},
        )

    return parser_cls(raw_body, **context)
