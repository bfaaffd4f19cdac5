"""库存 CRUD 操作"""
import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.api.errors import AppError
from storefront.enums import StockLedgerReason
from storefront.models import (
    InventoryLevel,
    OrderItem,
    ProductVariant,
    StockLedger,
    utc_now,
)

from .audit import record_audit

logger = logging.getLogger(__name__)


def _apply_delta(*, session: Session, variant_id: uuid.UUID, delta: int) -> int | None:
    """
    相对更新库存：available = available + delta

    Returns:
        更新后的可售库存；库存行不存在时返回 None
    """
    result = session.exec(
        update(InventoryLevel)
        .where(InventoryLevel.variant_id == variant_id)
        .values(available=InventoryLevel.available + delta, updated_at=utc_now())
    )
    if result.rowcount == 0:
        return None
    return session.exec(
        select(InventoryLevel.available).where(InventoryLevel.variant_id == variant_id)
    ).one()


def adjust_stock(
    *,
    session: Session,
    admin_id: uuid.UUID | None,
    variant_id: uuid.UUID,
    amount: int,
    reason: StockLedgerReason,
    reference_type: str | None = None,
    reference_id: uuid.UUID | None = None,
) -> InventoryLevel:
    """
    后台手动调整库存

    库存水位、库存流水和审计日志在同一个事务中写入，任何一步失败都整体回滚。
    库存行不存在时以 amount 作为初始库存创建。

    Raises:
        AppError: 规格不存在（404）、调整后库存为负（400）、并发创建冲突（409）
    """
    if not session.get(ProductVariant, variant_id):
        raise AppError(code=404101, message="Variant not found", status_code=404)

    try:
        new_available = _apply_delta(session=session, variant_id=variant_id, delta=amount)
        if new_available is None:
            session.add(InventoryLevel(variant_id=variant_id, available=amount))
            session.flush()
            new_available = amount
            old_available = 0
        else:
            old_available = new_available - amount

        if new_available < 0:
            raise AppError(code=400101, message="Insufficient stock", status_code=400)

        session.add(
            StockLedger(
                variant_id=variant_id,
                change_amount=amount,
                reason=reason,
                reference_type=reference_type or "manual_adjustment",
                reference_id=reference_id,
            )
        )
        record_audit(
            session=session,
            admin_id=admin_id,
            entity_type="inventory",
            entity_id=variant_id,
            action="adjust_stock",
            old_value={"available": old_available},
            new_value={"available": new_available, "reason": StockLedgerReason(reason).value},
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        raise AppError(
            code=409101,
            message="Inventory was modified concurrently, please retry",
            status_code=409,
        )
    except Exception:
        session.rollback()
        raise

    return session.get(InventoryLevel, variant_id, populate_existing=True)  # type: ignore[return-value]


def decrement_for_order(
    *, session: Session, order_id: uuid.UUID, items: Iterable[OrderItem]
) -> None:
    """
    支付成功后按订单明细扣减库存（不提交，随支付确认的事务一起提交）

    - 库存行不存在：记录日志并跳过，不自动创建
    - 扣减后为负：说明发生了超卖，记录日志但不阻断支付确认
    """
    for item in items:
        new_available = _apply_delta(
            session=session, variant_id=item.product_variant_id, delta=-item.quantity
        )
        if new_available is None:
            logger.warning(
                "No inventory row for variant %s (order %s), skipping decrement",
                item.product_variant_id,
                order_id,
            )
            continue
        if new_available < 0:
            logger.error(
                "Variant %s oversold by %s after order %s",
                item.product_variant_id,
                -new_available,
                order_id,
            )
        session.add(
            StockLedger(
                variant_id=item.product_variant_id,
                change_amount=-item.quantity,
                reason=StockLedgerReason.sale,
                reference_type="order",
                reference_id=order_id,
            )
        )


def list_inventory(*, session: Session) -> list[tuple[InventoryLevel, str]]:
    """库存列表（附带 SKU），按 SKU 排序"""
    stmt = (
        select(InventoryLevel, ProductVariant.sku)
        .join(ProductVariant, InventoryLevel.variant_id == ProductVariant.id)
        .order_by(ProductVariant.sku)
    )
    return list(session.exec(stmt).all())


def get_available(*, session: Session, variant_id: uuid.UUID) -> int | None:
    """查询可售库存；库存行不存在时返回 None（表示不限库存）"""
    return session.exec(
        select(InventoryLevel.available).where(InventoryLevel.variant_id == variant_id)
    ).first()
