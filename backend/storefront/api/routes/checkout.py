"""
下单路由模块

- 校验优惠码
- 查询可用快递和运费
- 创建订单并发起支付（支持游客）
"""
from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Query

from storefront import crud
from storefront.api.deps import OptionalUser, SessionDep
from storefront.api.schemas import (
    ApiEnvelope,
    CheckoutRequest,
    CouponValidateRequest,
    CourierOption,
)
from storefront.integrations.phonepe import get_phonepe_client
from storefront.integrations.shiprocket import get_shiprocket_client
from storefront.services import payments, shipping

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/coupon", response_model=ApiEnvelope)
def validate_coupon(session: SessionDep, body: CouponValidateRequest) -> ApiEnvelope:
    """
    校验优惠码

    请求路径: POST /api/checkout/coupon

    只做校验和折扣计算，不占用次数；无效时返回
    {"success": false, "error": "Invalid or expired promo code"} 等提示。
    """
    _, discount = crud.validate_coupon(session=session, code=body.code, amount=body.amount)
    return ApiEnvelope(data=discount)


@router.get("/shipping-options", response_model=ApiEnvelope)
def shipping_options(
    session: SessionDep,
    delivery_pincode: str = Query(min_length=4, max_length=10),
    declared_value: Decimal = Query(ge=0),
) -> ApiEnvelope:
    """查询收货邮编的可用快递（请求路径: GET /api/checkout/shipping-options）"""
    quotes = shipping.get_shipping_options(
        session=session,
        client=get_shiprocket_client(),
        delivery_pincode=delivery_pincode,
        declared_value=declared_value,
    )
    return ApiEnvelope(
        data=[
            CourierOption(
                id=q.id,
                name=q.name,
                price=q.price,
                time=q.time,
                estimated_delivery_days=q.estimated_delivery_days,
                is_cod=q.is_cod,
            )
            for q in quotes
        ]
    )


@router.post("/initiate", response_model=ApiEnvelope)
def initiate(session: SessionDep, current_user: OptionalUser, body: CheckoutRequest) -> ApiEnvelope:
    """
    创建订单并发起支付

    请求路径: POST /api/checkout/initiate

    运费按 courier_company_id 在服务端重新查询报价，不接受前端传入的价格。
    返回网关支付页地址，前端直接跳转；支付结果以服务端回调为准。
    """
    data = payments.initiate_checkout(
        session=session,
        client=get_phonepe_client(),
        shipping_client=get_shiprocket_client(),
        user=current_user,
        body=body,
    )
    return ApiEnvelope(data=data)
