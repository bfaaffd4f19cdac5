"""
优惠券模型模块
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlmodel import Field, SQLModel

from storefront.enums import DiscountType

from .base import new_id, utc_now


class Coupon(SQLModel, table=True):
    """
    优惠券模型

    优惠码统一存为大写，校验时也先转大写，实现大小写不敏感。

    字段说明：
    - code: 优惠码（唯一，大写）
    - discount_type: 折扣类型（fixed / percentage）
    - discount_value: 折扣值（固定金额或百分比）
    - min_order_amount: 最低订单金额（0 或为空表示不限制）
    - max_usage: 最大使用次数（为空表示不限制）
    - used_count: 已使用次数（支付成功时递增）
    - starts_at / expires_at: 生效时间窗口（expires_at 为空表示永不过期）
    """
    __tablename__ = "coupons"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    code: str = Field(sa_column=Column(String(64), unique=True, index=True, nullable=False))
    discount_type: DiscountType = Field(sa_column=Column(String(16), nullable=False))
    discount_value: Decimal = Field(sa_column=Column(Numeric(15, 2), nullable=False))
    min_order_amount: Decimal | None = Field(
        default=Decimal("0"), sa_column=Column(Numeric(15, 2), nullable=True)
    )
    max_usage: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    used_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    starts_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    expires_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class CouponUsage(SQLModel, table=True):
    """优惠券使用记录（每个订单最多一条）"""
    __tablename__ = "coupon_usage"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    coupon_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("coupons.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    user_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    order_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
        )
    )
    applied_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
