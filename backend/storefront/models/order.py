"""
订单模型模块

定义订单、订单明细和履约（发货）记录。
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlmodel import Field, SQLModel

from storefront.enums import OrderStatus

from .base import new_id, utc_now


class Order(SQLModel, table=True):
    """
    订单模型

    下单时与 Payment 一起创建（status=pending），之后只有支付 webhook
    能把订单推进到 paid / failed。

    字段说明：
    - user_id: 下单用户（游客为空）
    - status: 订单状态，流转规则见 storefront.enums.ORDER_TRANSITIONS
    - subtotal / discount_amount / tax_amount / shipping_amount / total_amount:
      金额拆分，total = subtotal - discount + tax + shipping
    - shipping_address_id / billing_address_id: 地址引用
    - coupon_id: 使用的优惠券（支付成功时核销）
    - courier_*: 下单时选择的快递公司
    - shiprocket_order_id / shiprocket_shipment_id / awb_code: 物流平台回写
    """
    __tablename__ = "orders"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    user_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(
            Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
        ),
    )
    status: OrderStatus = Field(
        default=OrderStatus.pending,
        sa_column=Column(String(32), index=True, nullable=False),
    )

    subtotal: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(15, 2), nullable=False)
    )
    discount_amount: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(15, 2), nullable=False)
    )
    tax_amount: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(15, 2), nullable=False)
    )
    shipping_amount: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(15, 2), nullable=False)
    )
    total_amount: Decimal = Field(sa_column=Column(Numeric(15, 2), nullable=False))
    currency: str = Field(default="INR", max_length=8)

    shipping_address_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True),
    )
    billing_address_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True),
    )
    coupon_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True),
    )

    courier_name: str | None = Field(default=None, max_length=128)
    courier_company_id: str | None = Field(default=None, max_length=32)
    shiprocket_order_id: str | None = Field(default=None, max_length=64)
    shiprocket_shipment_id: str | None = Field(default=None, max_length=64)
    awb_code: str | None = Field(default=None, max_length=64)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class OrderItem(SQLModel, table=True):
    """
    订单明细

    下单时对商品规格和价格做快照，之后不再修改；
    price_at_purchase 与商品当前价格无关。
    """
    __tablename__ = "order_items"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    order_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    product_variant_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False
        )
    )
    quantity: int = Field(default=1, sa_column=Column(Integer, nullable=False, default=1))
    price_at_purchase: Decimal = Field(sa_column=Column(Numeric(15, 2), nullable=False))


class Fulfillment(SQLModel, table=True):
    """履约记录（一次发货对应一条，保存运单号和承运商）"""
    __tablename__ = "fulfillments"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    order_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    tracking_number: str | None = Field(default=None, max_length=64)
    carrier: str | None = Field(default=None, max_length=128)
    status: str = Field(default="pending", max_length=32)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
