"""
支付模型模块
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlmodel import Field, SQLModel

from storefront.enums import PaymentStatus

from .base import new_id, utc_now


class Payment(SQLModel, table=True):
    """
    支付记录模型

    每次支付尝试一条记录。merchant_transaction_id 由我们生成并传给网关，
    webhook 回调时用它找到对应的支付记录（唯一索引）。

    字段说明：
    - order_id: 订单 ID
    - method: 支付渠道（如 "phonepe"）
    - merchant_transaction_id: 商户交易号（唯一）
    - provider_transaction_id: 网关侧交易号（支付成功后回写）
    - status: initiated / completed / failed
    - raw_payload: 网关最近一次返回的原始数据
    - paid_at: 支付成功时间
    """
    __tablename__ = "payments"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    order_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    method: str = Field(default="phonepe", max_length=32)
    merchant_transaction_id: str = Field(
        sa_column=Column(String(64), unique=True, index=True, nullable=False)
    )
    provider_transaction_id: str | None = Field(default=None, max_length=128)
    amount: Decimal = Field(sa_column=Column(Numeric(15, 2), nullable=False))
    status: PaymentStatus = Field(
        default=PaymentStatus.initiated, sa_column=Column(String(16), nullable=False)
    )
    raw_payload: dict | None = Field(default=None, sa_column=Column(JSON))
    paid_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
