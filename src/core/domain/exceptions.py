"""Base domain exceptions.

所有领域异常都应继承自 DomainException，并通过 error_code 和 fatal 类属性
描述错误类型：
- 可恢复错误（fatal = False）在使用处捕获，转为“记录日志并跳过”
- 致命错误（fatal = True）终止整个进程，退出码非零
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    error_code: str = "DOMAIN_ERROR"
    fatal: bool = False

    def __init__(self, message: str = "A domain error occurred"):
        self.message = message
        super().__init__(self.message)


class EntityNotFoundError(DomainException):
    """Raised when an entity is not found."""

    error_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str | None = None):
        message = f"{entity_type} not found"
        if entity_id:
            message = f"{entity_type} with id '{entity_id}' not found"
        super().__init__(message)
