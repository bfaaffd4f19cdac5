"""
优惠券路由模块（后台）

- GET /admin/coupons: 优惠券列表
- POST /admin/coupons: 创建优惠券（优惠码重复返回 409）
- DELETE /admin/coupons/{coupon_id}: 删除优惠券
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter

from storefront import crud
from storefront.api.deps import CurrentAdmin, SessionDep
from storefront.api.schemas import ApiEnvelope, CouponCreateRequest, CouponData
from storefront.models import Coupon

router = APIRouter(prefix="/admin/coupons", tags=["admin-coupons"])


def _coupon_data(coupon: Coupon) -> CouponData:
    return CouponData.model_validate(coupon, from_attributes=True)


@router.get("", response_model=ApiEnvelope)
def list_coupons(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    return ApiEnvelope(data=[_coupon_data(c) for c in crud.list_coupons(session=session)])


@router.post("", response_model=ApiEnvelope)
def create_coupon(session: SessionDep, admin: CurrentAdmin, body: CouponCreateRequest) -> ApiEnvelope:
    coupon = crud.create_coupon(session=session, admin_id=admin.id, data=body)
    return ApiEnvelope(data=_coupon_data(coupon))


@router.delete("/{coupon_id}", response_model=ApiEnvelope)
def delete_coupon(session: SessionDep, admin: CurrentAdmin, coupon_id: uuid.UUID) -> ApiEnvelope:
    crud.delete_coupon(session=session, admin_id=admin.id, coupon_id=coupon_id)
    return ApiEnvelope(data={"deleted": True})
