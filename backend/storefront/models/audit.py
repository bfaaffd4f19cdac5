"""
审计日志模型模块
"""
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid
from sqlmodel import Field, SQLModel

from .base import new_id, utc_now


class AuditLog(SQLModel, table=True):
    """
    审计日志模型

    记录后台管理员对数据的每一次修改，只追加，不修改、不删除。

    字段说明：
    - admin_id: 操作人（用户被删除后置空）
    - entity_type: 实体类型（如 "inventory"、"order"、"coupon"）
    - entity_id: 实体 ID
    - action: 操作（如 "adjust_stock"、"update_status"）
    - old_value / new_value: 修改前后的快照（JSON）
    """
    __tablename__ = "audit_logs"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    admin_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )
    entity_type: str = Field(sa_column=Column(String(32), index=True, nullable=False))
    entity_id: uuid.UUID = Field(sa_column=Column(Uuid, index=True, nullable=False))
    action: str = Field(sa_column=Column(String(64), nullable=False))
    old_value: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    new_value: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), index=True, nullable=False),
    )
