"""
店铺设置路由模块（后台）

- GET /admin/settings: 查看店铺设置
- PATCH /admin/settings: 修改店铺设置（取件邮编、税率等）
"""
from __future__ import annotations

from fastapi import APIRouter

from storefront import crud
from storefront.api.deps import CurrentAdmin, SessionDep
from storefront.api.schemas import ApiEnvelope, StoreSettingsData, StoreSettingsUpdateRequest

router = APIRouter(prefix="/admin/settings", tags=["admin-settings"])


@router.get("", response_model=ApiEnvelope)
def get_settings(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    store = crud.get_store_settings(session=session)
    return ApiEnvelope(data=StoreSettingsData.model_validate(store, from_attributes=True))


@router.patch("", response_model=ApiEnvelope)
def update_settings(
    session: SessionDep, admin: CurrentAdmin, body: StoreSettingsUpdateRequest
) -> ApiEnvelope:
    """
    修改店铺设置

    请求路径: PATCH /api/admin/settings

    pincode 是查询快递和下单计算运费所需的取件邮编。
    """
    store = crud.update_store_settings(session=session, admin_id=admin.id, data=body)
    return ApiEnvelope(data=StoreSettingsData.model_validate(store, from_attributes=True))
