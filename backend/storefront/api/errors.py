"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器，
输出 {"success": false, "error": ..., "code": ..., "data": null}。

错误码规则：HTTP 状态码 * 1000 + 序号，例如 404301 表示支付记录不存在。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息（用户友好的提示）
    - status_code: HTTP 状态码（400, 404, 409, 502 等）

    使用示例：
        raise AppError(code=404101, message="Variant not found", status_code=404)
    """

    def __init__(self, *, code: int, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def payment_not_found() -> AppError:
    """webhook 找不到对应的支付记录（幂等边界：未知交易只报错，不写库）"""
    return AppError(code=404301, message="Payment Not Found", status_code=404)


def order_not_found() -> AppError:
    return AppError(code=404201, message="Order not found", status_code=404)


def upstream_error(code: int, message: str) -> AppError:
    """第三方接口（支付网关 / 物流平台）调用失败"""
    return AppError(code=code, message=message, status_code=502)
