"""
地址路由模块

- GET /addresses: 我的地址列表（默认地址在前）
- POST /addresses: 新建地址（游客也可以创建，仅用于本次下单）
- DELETE /addresses/{address_id}: 删除地址
- POST /addresses/{address_id}/default: 设为默认地址
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter

from storefront import crud
from storefront.api.deps import CurrentUser, OptionalUser, SessionDep
from storefront.api.schemas import AddressCreateRequest, AddressData, ApiEnvelope
from storefront.models import Address

router = APIRouter(prefix="/addresses", tags=["addresses"])


def _address_data(address: Address) -> AddressData:
    return AddressData.model_validate(address, from_attributes=True)


@router.get("", response_model=ApiEnvelope)
def list_addresses(session: SessionDep, current_user: CurrentUser) -> ApiEnvelope:
    addresses = crud.list_addresses(session=session, user_id=current_user.id)
    return ApiEnvelope(data=[_address_data(a) for a in addresses])


@router.post("", response_model=ApiEnvelope)
def create_address(
    session: SessionDep, current_user: OptionalUser, body: AddressCreateRequest
) -> ApiEnvelope:
    """
    新建地址

    请求路径: POST /api/addresses

    返回的 id 用作下单时的 shipping_address_id / billing_address_id。
    """
    address = crud.create_address(
        session=session,
        user_id=current_user.id if current_user else None,
        data=body,
    )
    return ApiEnvelope(data=_address_data(address))


@router.delete("/{address_id}", response_model=ApiEnvelope)
def delete_address(
    session: SessionDep, current_user: CurrentUser, address_id: uuid.UUID
) -> ApiEnvelope:
    crud.delete_address(session=session, user_id=current_user.id, address_id=address_id)
    return ApiEnvelope(data={"deleted": True})


@router.post("/{address_id}/default", response_model=ApiEnvelope)
def set_default_address(
    session: SessionDep, current_user: CurrentUser, address_id: uuid.UUID
) -> ApiEnvelope:
    address = crud.set_default_address(
        session=session, user_id=current_user.id, address_id=address_id
    )
    return ApiEnvelope(data=_address_data(address))
