"""
订单路由模块

顾客：
- GET /orders: 我的订单（分页）
- GET /orders/{order_id}: 订单详情（游客订单凭订单 ID 查看，用于支付完成页）

后台（需要管理员）：
- GET /admin/orders, GET /admin/orders/{order_id}
- PATCH /admin/orders/{order_id}/status
- POST /admin/orders/{order_id}/fulfillments
- POST /admin/orders/{order_id}/shipment: 重试创建物流订单
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query
from sqlmodel import Session

from storefront import crud
from storefront.api.deps import CurrentAdmin, CurrentUser, OptionalUser, SessionDep
from storefront.api.errors import order_not_found
from storefront.api.schemas import (
    ApiEnvelope,
    FulfillmentData,
    FulfillmentUpsertRequest,
    OrderData,
    OrderItemData,
    OrderStatusUpdateRequest,
    Page,
    PaymentData,
)
from storefront.enums import OrderStatus, UserRole
from storefront.integrations.shiprocket import get_shiprocket_client
from storefront.models import Fulfillment, Order
from storefront.services import shipping

router = APIRouter(prefix="/orders", tags=["orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin-orders"])


def _fulfillment_data(f: Fulfillment) -> FulfillmentData:
    return FulfillmentData(
        id=f.id,
        tracking_number=f.tracking_number,
        carrier=f.carrier,
        status=f.status,
        created_at=f.created_at,
    )


def _order_data(session: Session, order: Order, *, detail: bool = True) -> OrderData:
    data = OrderData(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        subtotal=order.subtotal,
        discount_amount=order.discount_amount,
        tax_amount=order.tax_amount,
        shipping_amount=order.shipping_amount,
        total_amount=order.total_amount,
        currency=order.currency,
        courier_name=order.courier_name,
        awb_code=order.awb_code,
        created_at=order.created_at,
    )
    if not detail:
        return data

    items, payment_rows, fulfillments = crud.get_order_children(session=session, order_id=order.id)
    data.items = [
        OrderItemData(
            id=i.id,
            product_variant_id=i.product_variant_id,
            quantity=i.quantity,
            price_at_purchase=i.price_at_purchase,
        )
        for i in items
    ]
    data.payments = [
        PaymentData(
            id=p.id,
            method=p.method,
            merchant_transaction_id=p.merchant_transaction_id,
            provider_transaction_id=p.provider_transaction_id,
            amount=p.amount,
            status=p.status,
            paid_at=p.paid_at,
        )
        for p in payment_rows
    ]
    data.fulfillments = [_fulfillment_data(f) for f in fulfillments]
    return data


@router.get("", response_model=ApiEnvelope)
def my_orders(
    session: SessionDep,
    current_user: CurrentUser,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    rows, count = crud.list_orders(
        session=session, user_id=current_user.id, page=page, page_size=page_size
    )
    return ApiEnvelope(
        data=Page(data=[_order_data(session, o, detail=False) for o in rows], count=count)
    )


@router.get("/{order_id}", response_model=ApiEnvelope)
def get_order(session: SessionDep, current_user: OptionalUser, order_id: uuid.UUID) -> ApiEnvelope:
    """
    订单详情

    登录用户的订单只有本人（或管理员）可以查看；不属于当前用户时按不存在处理。
    """
    order = crud.get_order(session=session, order_id=order_id)
    if order.user_id is not None:
        is_owner = current_user is not None and current_user.id == order.user_id
        is_admin = current_user is not None and current_user.role == UserRole.admin
        if not (is_owner or is_admin):
            raise order_not_found()
    return ApiEnvelope(data=_order_data(session, order))


@admin_router.get("", response_model=ApiEnvelope)
def list_orders(
    session: SessionDep,
    _: CurrentAdmin,
    status: OrderStatus | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> ApiEnvelope:
    rows, count = crud.list_orders(session=session, status=status, page=page, page_size=page_size)
    return ApiEnvelope(
        data=Page(data=[_order_data(session, o, detail=False) for o in rows], count=count)
    )


@admin_router.get("/{order_id}", response_model=ApiEnvelope)
def admin_get_order(session: SessionDep, _: CurrentAdmin, order_id: uuid.UUID) -> ApiEnvelope:
    order = crud.get_order(session=session, order_id=order_id)
    return ApiEnvelope(data=_order_data(session, order))


@admin_router.patch("/{order_id}/status", response_model=ApiEnvelope)
def update_status(
    session: SessionDep,
    admin: CurrentAdmin,
    order_id: uuid.UUID,
    body: OrderStatusUpdateRequest,
) -> ApiEnvelope:
    """
    修改订单状态

    请求路径: PATCH /api/admin/orders/{order_id}/status

    不允许的流转返回 409，成功后写入审计日志。
    """
    order = crud.update_order_status(
        session=session, admin_id=admin.id, order_id=order_id, status=body.status
    )
    return ApiEnvelope(data=_order_data(session, order))


@admin_router.post("/{order_id}/fulfillments", response_model=ApiEnvelope)
def upsert_fulfillment(
    session: SessionDep,
    admin: CurrentAdmin,
    order_id: uuid.UUID,
    body: FulfillmentUpsertRequest,
) -> ApiEnvelope:
    fulfillment = crud.upsert_fulfillment(
        session=session, admin_id=admin.id, order_id=order_id, data=body
    )
    return ApiEnvelope(data=_fulfillment_data(fulfillment))


@admin_router.post("/{order_id}/shipment", response_model=ApiEnvelope)
def retry_shipment(session: SessionDep, admin: CurrentAdmin, order_id: uuid.UUID) -> ApiEnvelope:
    """
    重试创建物流订单

    支付回调中物流创建失败时由后台手动重试，物流平台的错误直接返回（502）。
    """
    order = shipping.create_shipment_for_order(
        session=session, client=get_shiprocket_client(), order_id=order_id
    )
    crud.record_audit(
        session=session,
        admin_id=admin.id,
        entity_type="order",
        entity_id=order.id,
        action="create_shipment",
        new_value={
            "shiprocket_order_id": order.shiprocket_order_id,
            "shiprocket_shipment_id": order.shiprocket_shipment_id,
            "awb_code": order.awb_code,
        },
    )
    session.commit()
    return ApiEnvelope(data=_order_data(session, order))
