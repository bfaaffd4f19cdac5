"""
枚举类型定义模块

定义应用中使用的所有枚举类型。
所有枚举都继承自 str 和 Enum，这样既可以用作字符串（直接写入 String 列），
又具有枚举的特性。
"""
from enum import Enum


class UserRole(str, Enum):
    """
    用户角色枚举

    - customer: 普通顾客
    - admin: 后台管理员（可以调整库存、管理优惠券、修改订单状态）
    """
    customer = "customer"
    admin = "admin"


class OrderStatus(str, Enum):
    """
    订单状态枚举

    正常流程：pending -> paid -> processing -> shipped -> delivered
    cancelled / failed / refunded 为终态，进入后不再流转。
    """
    pending = "pending"
    processing = "processing"
    paid = "paid"
    partially_shipped = "partially_shipped"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    returned = "returned"
    refunded = "refunded"
    failed = "failed"


# 后台可以执行的状态流转（key: 当前状态，value: 可以进入的下一个状态）
# pending -> paid 只能由支付回调完成（services.payments），不在此表中
ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.cancelled, OrderStatus.failed}),
    OrderStatus.paid: frozenset(
        {
            OrderStatus.processing,
            OrderStatus.shipped,
            OrderStatus.partially_shipped,
            OrderStatus.cancelled,
            OrderStatus.refunded,
        }
    ),
    OrderStatus.processing: frozenset(
        {
            OrderStatus.shipped,
            OrderStatus.partially_shipped,
            OrderStatus.cancelled,
            OrderStatus.failed,
        }
    ),
    OrderStatus.partially_shipped: frozenset({OrderStatus.shipped, OrderStatus.delivered}),
    OrderStatus.shipped: frozenset({OrderStatus.delivered, OrderStatus.returned}),
    OrderStatus.delivered: frozenset({OrderStatus.returned, OrderStatus.refunded}),
    OrderStatus.returned: frozenset({OrderStatus.refunded}),
    OrderStatus.cancelled: frozenset(),
    OrderStatus.failed: frozenset(),
    OrderStatus.refunded: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """判断订单能否从 current 流转到 target（数据库读出的是普通字符串）"""
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]


class PaymentStatus(str, Enum):
    """
    支付状态枚举

    - initiated: 已发起（下单时创建）
    - completed: 支付成功（由 webhook 确认）
    - failed: 支付失败
    """
    initiated = "initiated"
    completed = "completed"
    failed = "failed"


class DiscountType(str, Enum):
    """
    优惠券折扣类型

    - fixed: 固定金额减免
    - percentage: 按订单金额百分比减免
    """
    fixed = "fixed"
    percentage = "percentage"


class StockLedgerReason(str, Enum):
    """
    库存流水原因

    - sale: 销售出库（支付成功后扣减）
    - return: 退货入库
    - manual_adjustment: 手动调整
    - damage: 损坏报废
    - restock: 补货
    """
    sale = "sale"
    return_ = "return"
    manual_adjustment = "manual_adjustment"
    damage = "damage"
    restock = "restock"


class NotificationVersion(str, Enum):
    """
    支付网关通知的信封版本

    - legacy: {"response": "<base64 JSON>"}，带 X-VERIFY 签名
    - inline: {"code": ..., "data": {...}} 直接 JSON
    - v2: {"event": ..., "payload": {...}} 新版 checkout 事件
    """
    legacy = "legacy"
    inline = "inline"
    v2 = "v2"


class WebhookOutcome(str, Enum):
    """
    支付回调处理结果

    - confirmed: 本次回调把订单从 pending 推进到 paid
    - duplicate: 订单已处理过（重复或乱序回调）
    - failed: 明确失败，订单标记为 failed
    - declined: 非成功结果，只标记支付记录
    - ignored: 没有结果码的事件
    """
    confirmed = "confirmed"
    duplicate = "duplicate"
    failed = "failed"
    declined = "declined"
    ignored = "ignored"
