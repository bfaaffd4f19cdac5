"""
商品目录模型模块

只保留下单、库存和发货需要的字段（名称、SKU、价格、重量）。
后台创建商品时不创建库存记录，库存在第一次调整时写入。
"""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlmodel import Field, SQLModel

from .base import new_id, utc_now


class Product(SQLModel, table=True):
    __tablename__ = "products"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    name: str = Field(max_length=255)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class ProductVariant(SQLModel, table=True):
    """
    商品规格（SKU）

    字段说明：
    - sku: 库存编码（唯一）
    - price: 标价
    - sale_price: 促销价（设置时下单按促销价计算）
    - weight: 重量（公斤，发货时使用，未设置用默认包裹重量）
    """
    __tablename__ = "product_variants"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    product_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    sku: str = Field(sa_column=Column(String(64), unique=True, index=True, nullable=False))
    price: Decimal = Field(sa_column=Column(Numeric(15, 2), nullable=False))
    sale_price: Decimal | None = Field(
        default=None, sa_column=Column(Numeric(15, 2), nullable=True)
    )
    weight: float | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    @property
    def effective_price(self) -> Decimal:
        """实际售价：有促销价时取促销价"""
        return self.sale_price if self.sale_price is not None else self.price
