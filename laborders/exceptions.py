"""
统一异常体系。

所有业务异常继承 BaseAppException，包含：
- type:        错误类型标识（validation_error / not_found / forbidden / conflict / internal_error）
- code:        业务错误码（UNKNOWN_TEST_CODE / PAYMENT_EXCEEDS_BALANCE / ...）
- message:     人类可读的描述
- detail:      可选的附加信息（dict / list / None）
- http_status: HTTP 状态码

Service 层只需 raise，exception_handler 统一捕获并格式化响应。
"""


class BaseAppException(Exception):
    """所有业务异常的基类。"""

    type = 'error'
    code = 'UNKNOWN_ERROR'
    http_status = 500

    def __init__(self, message, code=None, detail=None, http_status=None):
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.detail = detail
        super().__init__(message)


class ValidationError(BaseAppException):
    """Malformed input, unknown test codes, overpayment. 400."""

    type = 'validation_error'
    code = 'VALIDATION_ERROR'
    http_status = 400


class NotFoundError(BaseAppException):
    """Referenced order / sample / patient does not exist. 404."""

    type = 'not_found'
    code = 'NOT_FOUND'
    http_status = 404


class ForbiddenError(BaseAppException):
    """Principal's role is not allowed to perform the operation. 403."""

    type = 'forbidden'
    code = 'FORBIDDEN'
    http_status = 403


class ConflictError(BaseAppException):
    """
    State precondition violated, usually by a concurrent writer.

    例如：样本已被其他人 accession，或 order.version 已过期。
    调用方不应盲目重试，另一个请求已经赢了这次竞争。
    """

    type = 'conflict'
    code = 'CONFLICT'
    http_status = 409


class InternalError(BaseAppException):
    """Persistence failure. 500."""

    type = 'internal_error'
    code = 'INTERNAL_ERROR'
    http_status = 500
