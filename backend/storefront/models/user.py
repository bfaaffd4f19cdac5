"""
用户与地址模型模块

用户由外部认证服务创建，这里只保存订单和审计需要引用的字段。
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlmodel import Field, SQLModel

from storefront.enums import UserRole

from .base import new_id, utc_now


class User(SQLModel, table=True):
    """
    用户模型

    字段说明：
    - id: 主键（UUID，与认证服务一致）
    - email: 邮箱（唯一）
    - name: 显示名称
    - role: 角色（customer / admin）
    """
    __tablename__ = "users"
    id: uuid.UUID = Field(
        default_factory=new_id,
        sa_column=Column(Uuid, primary_key=True),
    )
    email: str = Field(
        max_length=255,
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
    )
    name: str | None = Field(default=None, max_length=128)
    role: UserRole = Field(
        default=UserRole.customer, sa_column=Column(String(16), nullable=False)
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Address(SQLModel, table=True):
    """
    收货 / 账单地址

    游客下单时 user_id 为空。
    is_default 标记用户的默认地址，每个用户最多一条。
    """
    __tablename__ = "addresses"
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
    full_name: str = Field(max_length=128)
    phone: str = Field(max_length=32)
    email: str | None = Field(default=None, max_length=255)
    line1: str = Field(max_length=255)
    line2: str | None = Field(default=None, max_length=255)
    city: str = Field(max_length=64)
    state: str = Field(max_length=64)
    pincode: str = Field(max_length=16)
    country: str = Field(default="India", max_length=64)
    is_default: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
