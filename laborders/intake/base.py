"""
BaseIntakeParser: 所有请求体 Parser 的抽象基类。

每个操作只需：
1. 继承 BaseIntakeParser
2. 实现 transform()，必要时 override validate()
3. 在 factory.py 的 _REGISTRY 注册一行

Service 层无需任何改动。
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from ..exceptions import ValidationError

# ── 共用校验正则（Parser 可直接复用） ─────────────────────────────────────
ICD10_RE = re.compile(r"^[A-Za-z]\d{2}(\.\d{1,4})?$")


class BaseIntakeParser(ABC):
    """
    三步流水线：parse → transform → validate

    parse() 接受 bytes / str（JSON 文本）或已经解析好的 dict（DRF request.data）。
    transform() 把 dict 转成 types.py 里的 dataclass，并把字段级错误收集到 self.errors。
    validate() 统一抛出 ValidationError，detail = {"errors": [{field, message}, ...]}。
    """

    # 子类声明自己对应的操作名（与 factory 注册键一致）
    operation: str = ""

    def __init__(self, raw_body: Any):
        self._raw_body = raw_body
        self._parsed: dict = {}
        self.errors: list[dict] = []

    # ── 提供默认实现，子类可 override ──────────────────────────────────────

    def parse(self) -> dict:
        raw = self._raw_body
        if isinstance(raw, (bytes, str)):
            try:
                raw = json.loads(raw or "{}")
            except ValueError:
                raise ValidationError(
                    message="Request body is not valid JSON.",
                    code="MALFORMED_JSON",
                )
        if not isinstance(raw, dict):
            raise ValidationError(
                message="Request body must be a JSON object.",
                code="MALFORMED_BODY",
            )
        self._parsed = raw
        return raw

    def add_error(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def validate(self, record: Any) -> None:
        if self.errors:
            raise ValidationError(
                message="Request validation failed.",
                code="VALIDATION_ERROR",
                detail={"errors": self.errors},
            )

    # ── 必须实现 ───────────────────────────────────────────────────────────

    @abstractmethod
    def transform(self) -> Any:
        """self._parsed → typed input record; field problems go to add_error()."""

    # ── 对外统一入口 ───────────────────────────────────────────────────────

    def process(self) -> Any:
        """parse → transform → validate，返回校验通过的 input record。"""
        self.parse()
        record = self.transform()
        self.validate(record)
        return record

    # ── 字段读取小工具 ─────────────────────────────────────────────────────

    def _str(self, key: str, *, required: bool = True, default: str = "") -> str:
        value = self._parsed.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                self.add_error(key, f"{key} is required.")
            return default
        if not isinstance(value, str):
            self.add_error(key, f"{key} must be a string.")
            return default
        return value.strip()

    def _choice(self, key: str, choices, default: str) -> str:
        value = self._parsed.get(key)
        if value is None:
            return default
        if value not in choices:
            self.add_error(key, f"{key} must be one of {sorted(choices)}.")
            return default
        return value

    def _int(self, key: str, *, required: bool = True, default: int = 0) -> int:
        value = self._parsed.get(key)
        if value is None:
            if required:
                self.add_error(key, f"{key} is required.")
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            self.add_error(key, f"{key} must be an integer.")
            return default
        return value
