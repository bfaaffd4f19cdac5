"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构。
使用 Pydantic 进行数据验证和序列化，这些模型不是数据库表，只用于 API 数据交换。
"""
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from storefront.enums import (
    DiscountType,
    OrderStatus,
    PaymentStatus,
    StockLedgerReason,
)

# ============================================================
# 通用响应模型
# ============================================================


class TokenPayload(BaseModel):
    """
    JWT Token 载荷模型

    sub (subject) 存储用户 ID。
    """
    sub: str | None = None


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    - success: 是否成功
    - data: 成功时的业务数据
    - error: 失败时的错误描述

    示例响应：
        {"success": true, "data": {...}, "error": null}
        {"success": false, "data": null, "error": "Coupon code already exists."}
    """
    success: bool = True
    data: Any | None = None
    error: str | None = None


class Page(BaseModel):
    """分页列表"""
    data: list[Any]
    count: int


# ============================================================
# 地址
# ============================================================


class AddressCreateRequest(BaseModel):
    full_name: str = Field(min_length=1, max_length=128)
    phone: str = Field(min_length=6, max_length=32)
    email: str | None = Field(default=None, max_length=255)
    line1: str = Field(min_length=1, max_length=255)
    line2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=1, max_length=64)
    state: str = Field(min_length=1, max_length=64)
    pincode: str = Field(min_length=4, max_length=10)
    country: str = Field(default="India", max_length=64)
    is_default: bool = False


class AddressData(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None = None
    full_name: str
    phone: str
    email: str | None = None
    line1: str
    line2: str | None = None
    city: str
    state: str
    pincode: str
    country: str
    is_default: bool
    created_at: datetime


# ============================================================
# 商品 / 店铺设置
# ============================================================


class VariantCreateRequest(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    price: Decimal = Field(gt=0)
    sale_price: Decimal | None = Field(default=None, gt=0)
    weight: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_sale_price(self) -> VariantCreateRequest:
        if self.sale_price is not None and self.sale_price > self.price:
            raise ValueError("sale_price cannot exceed price")
        return self


class ProductCreateRequest(BaseModel):
    """
    创建商品请求模型

    一次提交商品和全部规格，SKU 在请求内不能重复。
    """
    name: str = Field(min_length=1, max_length=255)
    variants: list[VariantCreateRequest] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_unique_skus(self) -> ProductCreateRequest:
        skus = [v.sku for v in self.variants]
        if len(set(skus)) != len(skus):
            raise ValueError("Duplicate SKU in request")
        return self


class VariantData(BaseModel):
    id: uuid.UUID
    sku: str
    price: Decimal
    sale_price: Decimal | None = None
    weight: float | None = None
    available: int | None = None


class ProductData(BaseModel):
    id: uuid.UUID
    name: str
    created_at: datetime
    variants: list[VariantData] = []


class StoreSettingsUpdateRequest(BaseModel):
    """只更新提交了的字段"""
    store_name: str | None = Field(default=None, min_length=1, max_length=128)
    store_email: str | None = Field(default=None, max_length=255)
    store_phone: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=64)
    state: str | None = Field(default=None, max_length=64)
    pincode: str | None = Field(default=None, min_length=4, max_length=10)
    country: str | None = Field(default=None, max_length=64)
    is_tax_enabled: bool | None = None
    tax_name: str | None = Field(default=None, max_length=32)
    tax_percentage: Decimal | None = Field(default=None, ge=0, le=100)


class StoreSettingsData(BaseModel):
    id: uuid.UUID
    store_name: str
    store_email: str | None = None
    store_phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    country: str
    is_tax_enabled: bool
    tax_name: str
    tax_percentage: Decimal
    updated_at: datetime


# ============================================================
# 库存
# ============================================================


class StockAdjustRequest(BaseModel):
    """
    库存调整请求模型

    amount 为带符号的变动数量：正数入库，负数出库。
    """
    variant_id: uuid.UUID
    amount: int
    reason: StockLedgerReason
    reference_type: str | None = Field(default=None, max_length=32)
    reference_id: uuid.UUID | None = None


class InventoryLevelData(BaseModel):
    variant_id: uuid.UUID
    sku: str | None = None
    available: int
    reserved: int
    updated_at: datetime


# ============================================================
# 优惠券
# ============================================================


class CouponValidateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    amount: Decimal = Field(ge=0)


class CouponDiscount(BaseModel):
    """
    优惠券校验通过后的折扣描述

    discount_amount 是针对本次订单金额计算出的实际减免金额。
    """
    id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal


class CouponCreateRequest(BaseModel):
    """
    创建优惠券请求模型

    code 会被转成大写；百分比折扣不能超过 100。
    """
    code: str = Field(min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: Decimal = Field(gt=0)
    min_order_amount: Decimal | None = Field(default=None, ge=0)
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    max_usage: int | None = Field(default=None, ge=0)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("Coupon code is required")
        return v

    @model_validator(mode="after")
    def _check_values(self) -> CouponCreateRequest:
        if self.discount_type == DiscountType.percentage and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.starts_at and self.expires_at and self.expires_at <= self.starts_at:
            raise ValueError("expires_at must be after starts_at")
        return self


class CouponData(BaseModel):
    id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    min_order_amount: Decimal | None = None
    max_usage: int | None = None
    used_count: int
    starts_at: datetime
    expires_at: datetime | None = None


# ============================================================
# 下单 / 支付
# ============================================================


class CartLine(BaseModel):
    variant_id: uuid.UUID
    quantity: int = Field(ge=1, le=1000)


class CheckoutRequest(BaseModel):
    """
    发起支付请求模型

    购物车是前端状态，下单时把购物车明细直接提交上来；
    金额以服务端按商品价格重新计算的结果为准。
    快递只提交 courier_company_id，运费由服务端重新查询报价得到。
    """
    items: list[CartLine] = Field(min_length=1)
    shipping_address_id: uuid.UUID
    billing_address_id: uuid.UUID | None = None
    courier_company_id: str = Field(min_length=1, max_length=32)
    coupon_code: str | None = Field(default=None, max_length=64)


class CheckoutData(BaseModel):
    order_id: uuid.UUID
    merchant_transaction_id: str
    total_amount: Decimal
    redirect_url: str


class CourierOption(BaseModel):
    id: str
    name: str
    price: Decimal
    time: str
    estimated_delivery_days: str | None = None
    is_cod: bool = False


# ============================================================
# 订单
# ============================================================


class OrderItemData(BaseModel):
    id: uuid.UUID
    product_variant_id: uuid.UUID
    quantity: int
    price_at_purchase: Decimal


class PaymentData(BaseModel):
    id: uuid.UUID
    method: str
    merchant_transaction_id: str
    provider_transaction_id: str | None = None
    amount: Decimal
    status: PaymentStatus
    paid_at: datetime | None = None


class FulfillmentData(BaseModel):
    id: uuid.UUID
    tracking_number: str | None = None
    carrier: str | None = None
    status: str
    created_at: datetime


class OrderData(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID | None = None
    status: OrderStatus
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    currency: str
    courier_name: str | None = None
    awb_code: str | None = None
    created_at: datetime
    items: list[OrderItemData] = []
    payments: list[PaymentData] = []
    fulfillments: list[FulfillmentData] = []


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus


class FulfillmentUpsertRequest(BaseModel):
    """新建或更新履约记录（带 id 时更新）"""
    id: uuid.UUID | None = None
    tracking_number: str | None = Field(default=None, max_length=64)
    carrier: str | None = Field(default=None, max_length=128)
    status: str = Field(default="pending", max_length=32)


# ============================================================
# 审计日志
# ============================================================


class AuditLogData(BaseModel):
    id: uuid.UUID
    admin_id: uuid.UUID | None = None
    admin_name: str | None = None
    entity_type: str
    entity_id: uuid.UUID
    action: str
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    created_at: datetime
