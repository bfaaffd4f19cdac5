"""
库存模型模块

InventoryLevel 是每个规格的当前库存快照，StockLedger 是只追加的库存流水。
两者在同一个事务中写入，快照 = 流水的累计结果。
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlmodel import Field, SQLModel

from storefront.enums import StockLedgerReason

from .base import new_id, utc_now


class InventoryLevel(SQLModel, table=True):
    """
    库存水位模型

    以 variant_id 为主键，每个规格一行。行在第一次调整库存时才创建。
    available 只通过相对更新（available = available + delta）修改，
    不在应用层读出再写回。

    字段说明：
    - variant_id: 规格 ID（主键，外键）
    - available: 可售库存（出现负数说明发生了超卖）
    - reserved: 预留库存
    - updated_at: 最后更新时间
    """
    __tablename__ = "inventory_levels"
    variant_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid,
            ForeignKey("product_variants.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    available: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    reserved: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class StockLedger(SQLModel, table=True):
    """
    库存流水模型

    每次库存变动追加一条记录，不修改、不删除。

    字段说明：
    - change_amount: 变动数量（负数表示出库）
    - reason: 变动原因
    - reference_type: 关联对象类型（如 "order"、"manual_adjustment"）
    - reference_id: 关联对象 ID（如订单 ID）
    """
    __tablename__ = "stock_ledger"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    variant_id: uuid.UUID = Field(
        sa_column=Column(
            Uuid,
            ForeignKey("product_variants.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )
    )
    change_amount: int = Field(nullable=False)
    reason: StockLedgerReason = Field(sa_column=Column(String(32), nullable=False))
    reference_type: str | None = Field(default=None, max_length=32)
    reference_id: uuid.UUID | None = Field(default=None, sa_column=Column(Uuid, nullable=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
