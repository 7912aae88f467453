"""
业务异常

服务层抛出 ServiceError 子类，由 main.py 的异常处理器映射为 HTTP 状态码
和 {message, error} 结构的响应体。
"""
from fastapi import status


class ServiceError(Exception):
    """业务异常基类"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code or self.default_code
        super().__init__(message)


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ValidationError(ServiceError):
    default_code = "VALIDATION_ERROR"


class InsufficientCreditsError(ServiceError):
    default_code = "INSUFFICIENT_CREDITS"


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHORIZED"


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class PaymentGatewayError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = "PAYMENT_GATEWAY_ERROR"
