"""
店铺设置模型模块
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, Numeric, Uuid
from sqlmodel import Field, SQLModel

from .base import new_id, utc_now


class StoreSettings(SQLModel, table=True):
    """
    店铺设置（全表只有一行）

    pincode 是发货取件邮编，查询物流可达性时使用；
    is_tax_enabled / tax_percentage 决定下单时是否加收税费。
    """
    __tablename__ = "store_settings"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    store_name: str = Field(default="My Store", max_length=128)
    store_email: str | None = Field(default=None, max_length=255)
    store_phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=64)
    state: str | None = Field(default=None, max_length=64)
    pincode: str | None = Field(default=None, max_length=16)
    country: str = Field(default="India", max_length=64)

    is_tax_enabled: bool = Field(default=False)
    tax_name: str = Field(default="GST", max_length=32)
    tax_percentage: Decimal = Field(
        default=Decimal("0.00"), sa_column=Column(Numeric(10, 2), nullable=False)
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
