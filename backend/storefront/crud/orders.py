"""订单 CRUD 操作"""
import uuid

from sqlalchemy import update
from sqlmodel import Session, func, select

from storefront.api.errors import AppError, order_not_found
from storefront.api.schemas import FulfillmentUpsertRequest
from storefront.enums import OrderStatus, can_transition
from storefront.models import Fulfillment, Order, OrderItem, Payment, utc_now

from .audit import record_audit


def get_order(*, session: Session, order_id: uuid.UUID) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise order_not_found()
    return order


def get_order_children(
    *, session: Session, order_id: uuid.UUID
) -> tuple[list[OrderItem], list[Payment], list[Fulfillment]]:
    """订单明细、支付记录和履约记录"""
    items = session.exec(select(OrderItem).where(OrderItem.order_id == order_id)).all()
    payments = session.exec(
        select(Payment).where(Payment.order_id == order_id).order_by(Payment.created_at)
    ).all()
    fulfillments = session.exec(
        select(Fulfillment)
        .where(Fulfillment.order_id == order_id)
        .order_by(Fulfillment.created_at)
    ).all()
    return list(items), list(payments), list(fulfillments)


def list_orders(
    *,
    session: Session,
    user_id: uuid.UUID | None = None,
    status: OrderStatus | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """分页查询订单，按创建时间倒序"""
    conditions = []
    if user_id is not None:
        conditions.append(Order.user_id == user_id)
    if status is not None:
        conditions.append(Order.status == status)

    count = session.exec(select(func.count()).select_from(Order).where(*conditions)).one()
    rows = session.exec(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return list(rows), count


def update_order_status(
    *,
    session: Session,
    admin_id: uuid.UUID,
    order_id: uuid.UUID,
    status: OrderStatus,
) -> Order:
    """
    后台修改订单状态

    只允许 ORDER_TRANSITIONS 中定义的流转；用条件更新保证
    读到的旧状态在写入时仍然有效（与支付 webhook 并发时不会互相覆盖）。

    Raises:
        AppError: 订单不存在（404）、不允许的流转或并发修改（409）
    """
    order = get_order(session=session, order_id=order_id)
    current = OrderStatus(order.status)
    if not can_transition(current, status):
        raise AppError(
            code=409202,
            message=f"Cannot change order status from {current.value} to {status.value}",
            status_code=409,
        )

    try:
        result = session.exec(
            update(Order)
            .where(Order.id == order_id, Order.status == current)
            .values(status=status, updated_at=utc_now())
        )
        if result.rowcount != 1:
            raise AppError(
                code=409203,
                message="Order status was changed concurrently, please retry",
                status_code=409,
            )
        record_audit(
            session=session,
            admin_id=admin_id,
            entity_type="order",
            entity_id=order_id,
            action="update_status",
            old_value={"status": current.value},
            new_value={"status": status.value},
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    return order


def upsert_fulfillment(
    *,
    session: Session,
    admin_id: uuid.UUID,
    order_id: uuid.UUID,
    data: FulfillmentUpsertRequest,
) -> Fulfillment:
    """
    新建或更新履约记录（运单号、承运商、状态）并记录审计日志

    Raises:
        AppError: 订单或履约记录不存在（404）
    """
    get_order(session=session, order_id=order_id)

    old_value = None
    if data.id is not None:
        fulfillment = session.get(Fulfillment, data.id)
        if not fulfillment or fulfillment.order_id != order_id:
            raise AppError(code=404203, message="Fulfillment not found", status_code=404)
        old_value = _snapshot(fulfillment)
        fulfillment.tracking_number = data.tracking_number
        fulfillment.carrier = data.carrier
        fulfillment.status = data.status
        fulfillment.updated_at = utc_now()
        action = "update_fulfillment"
    else:
        fulfillment = Fulfillment(
            order_id=order_id,
            tracking_number=data.tracking_number,
            carrier=data.carrier,
            status=data.status,
        )
        action = "create_fulfillment"

    session.add(fulfillment)
    session.flush()
    record_audit(
        session=session,
        admin_id=admin_id,
        entity_type="order",
        entity_id=order_id,
        action=action,
        old_value=old_value,
        new_value=_snapshot(fulfillment),
    )
    session.commit()
    session.refresh(fulfillment)
    return fulfillment


def _snapshot(fulfillment: Fulfillment) -> dict:
    return {
        "id": str(fulfillment.id),
        "tracking_number": fulfillment.tracking_number,
        "carrier": fulfillment.carrier,
        "status": fulfillment.status,
    }
