"""
库存路由模块（后台）

- GET /admin/inventory: 库存列表
- POST /admin/inventory/adjust: 手动调整库存
"""
from __future__ import annotations

from fastapi import APIRouter

from storefront import crud
from storefront.api.deps import CurrentAdmin, SessionDep
from storefront.api.schemas import ApiEnvelope, InventoryLevelData, StockAdjustRequest

router = APIRouter(prefix="/admin/inventory", tags=["admin-inventory"])


@router.get("", response_model=ApiEnvelope)
def list_inventory(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    rows = crud.list_inventory(session=session)
    return ApiEnvelope(
        data=[
            InventoryLevelData(
                variant_id=level.variant_id,
                sku=sku,
                available=level.available,
                reserved=level.reserved,
                updated_at=level.updated_at,
            )
            for level, sku in rows
        ]
    )


@router.post("/adjust", response_model=ApiEnvelope)
def adjust(session: SessionDep, admin: CurrentAdmin, body: StockAdjustRequest) -> ApiEnvelope:
    """
    手动调整库存

    请求路径: POST /api/admin/inventory/adjust

    库存、库存流水、审计日志要么全部写入，要么全部不写。
    调整后库存为负返回 400。
    """
    level = crud.adjust_stock(
        session=session,
        admin_id=admin.id,
        variant_id=body.variant_id,
        amount=body.amount,
        reason=body.reason,
        reference_type=body.reference_type,
        reference_id=body.reference_id,
    )
    return ApiEnvelope(
        data=InventoryLevelData(
            variant_id=level.variant_id,
            available=level.available,
            reserved=level.reserved,
            updated_at=level.updated_at,
        )
    )
