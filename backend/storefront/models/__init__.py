"""
数据库模型定义模块

本模块使用 SQLModel 定义所有数据库表结构。

模型按功能拆分：
- user.py: 用户、地址
- catalog.py: 商品、商品规格
- inventory.py: 库存水位、库存流水
- coupon.py: 优惠券、优惠券使用记录
- order.py: 订单、订单明细、履约记录
- payment.py: 支付记录
- audit.py: 审计日志
- store.py: 店铺设置
"""
from sqlmodel import SQLModel

from .audit import AuditLog
from .base import new_id, utc_now
from .catalog import Product, ProductVariant
from .coupon import Coupon, CouponUsage
from .inventory import InventoryLevel, StockLedger
from .order import Fulfillment, Order, OrderItem
from .payment import Payment
from .store import StoreSettings
from .user import Address, User

__all__ = [
    "SQLModel",
    "utc_now",
    "new_id",
    "User",
    "Address",
    "Product",
    "ProductVariant",
    "InventoryLevel",
    "StockLedger",
    "Coupon",
    "CouponUsage",
    "Order",
    "OrderItem",
    "Fulfillment",
    "Payment",
    "AuditLog",
    "StoreSettings",
]
