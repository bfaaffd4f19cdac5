"""优惠券 CRUD 操作"""
import logging
import uuid
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.api.errors import AppError
from storefront.api.schemas import CouponCreateRequest, CouponData, CouponDiscount
from storefront.enums import DiscountType
from storefront.models import Coupon, CouponUsage, utc_now

from .audit import record_audit

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")


def format_inr(amount: Decimal) -> str:
    """按印度数字分组格式化金额，例如 123456.5 -> ₹1,23,456.50"""
    value = Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, frac = f"{abs(value):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join([*groups, tail])
    return f"{sign}₹{whole}.{frac}"


def compute_discount(coupon: Coupon, amount: Decimal) -> Decimal:
    """
    计算实际减免金额

    - percentage: amount * value / 100
    - fixed: value，但不超过订单金额
    """
    if coupon.discount_type == DiscountType.percentage:
        discount = amount * Decimal(coupon.discount_value) / Decimal(100)
    else:
        discount = min(Decimal(coupon.discount_value), amount)
    return discount.quantize(_CENT, rounding=ROUND_HALF_UP)


def validate_coupon(
    *, session: Session, code: str, amount: Decimal, now: datetime | None = None
) -> tuple[Coupon, CouponDiscount]:
    """
    校验优惠码（只读，不修改 used_count）

    按顺序检查：存在且在有效期内 -> 未超过使用上限 -> 达到最低订单金额。

    Raises:
        AppError: 任意一项不满足时返回 400，message 为给用户看的原因
    """
    now = now or utc_now()
    normalized = code.strip().upper()
    coupon = session.exec(
        select(Coupon).where(
            Coupon.code == normalized,
            Coupon.starts_at <= now,
            or_(Coupon.expires_at.is_(None), Coupon.expires_at >= now),
        )
    ).first()
    if not coupon:
        raise AppError(code=400201, message="Invalid or expired promo code", status_code=400)

    if coupon.max_usage is not None and coupon.used_count >= coupon.max_usage:
        raise AppError(
            code=400202,
            message="This promo code has reached its usage limit",
            status_code=400,
        )

    min_amount = Decimal(coupon.min_order_amount or 0)
    if min_amount > 0 and amount < min_amount:
        raise AppError(
            code=400203,
            message=f"Minimum order amount for this code is {format_inr(min_amount)}",
            status_code=400,
        )

    return coupon, CouponDiscount(
        id=coupon.id,
        code=coupon.code,
        discount_type=coupon.discount_type,
        discount_value=coupon.discount_value,
        discount_amount=compute_discount(coupon, amount),
    )


def redeem_coupon(
    *,
    session: Session,
    coupon_id: uuid.UUID,
    order_id: uuid.UUID,
    user_id: uuid.UUID | None,
) -> bool:
    """
    核销优惠券（不提交，随支付确认的事务一起提交）

    used_count 用条件更新递增，不会超过 max_usage；
    下单后到支付成功之间券被用完时只记录日志，订单照常确认。
    """
    result = session.exec(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            or_(Coupon.max_usage.is_(None), Coupon.used_count < Coupon.max_usage),
        )
        .values(used_count=Coupon.used_count + 1)
    )
    if result.rowcount != 1:
        logger.warning("Coupon %s reached its usage limit before order %s was paid", coupon_id, order_id)
        return False
    session.add(CouponUsage(coupon_id=coupon_id, order_id=order_id, user_id=user_id))
    return True


def list_coupons(*, session: Session) -> list[Coupon]:
    return list(session.exec(select(Coupon).order_by(Coupon.starts_at.desc())).all())


def create_coupon(
    *, session: Session, admin_id: uuid.UUID, data: CouponCreateRequest
) -> Coupon:
    """
    创建优惠券并记录审计日志

    Raises:
        AppError: 优惠码已存在（409）
    """
    if session.exec(select(Coupon).where(Coupon.code == data.code)).first():
        raise AppError(code=409201, message="Coupon code already exists.", status_code=409)

    coupon = Coupon(
        code=data.code,
        discount_type=data.discount_type,
        discount_value=data.discount_value,
        min_order_amount=data.min_order_amount or Decimal("0"),
        max_usage=data.max_usage,
        starts_at=data.starts_at or utc_now(),
        expires_at=data.expires_at,
    )
    try:
        session.add(coupon)
        session.flush()
        record_audit(
            session=session,
            admin_id=admin_id,
            entity_type="coupon",
            entity_id=coupon.id,
            action="create",
            new_value=_snapshot(coupon),
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        raise AppError(code=409201, message="Coupon code already exists.", status_code=409)
    session.refresh(coupon)
    return coupon


def delete_coupon(*, session: Session, admin_id: uuid.UUID, coupon_id: uuid.UUID) -> None:
    """
    删除优惠券并记录审计日志

    Raises:
        AppError: 优惠券不存在（404）
    """
    coupon = session.get(Coupon, coupon_id)
    if not coupon:
        raise AppError(code=404202, message="Coupon not found", status_code=404)
    record_audit(
        session=session,
        admin_id=admin_id,
        entity_type="coupon",
        entity_id=coupon.id,
        action="delete",
        old_value=_snapshot(coupon),
    )
    session.delete(coupon)
    session.commit()


def _snapshot(coupon: Coupon) -> dict:
    return CouponData.model_validate(coupon, from_attributes=True).model_dump(mode="json")
