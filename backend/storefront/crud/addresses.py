"""地址 CRUD 操作"""
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from storefront.api.errors import AppError
from storefront.api.schemas import AddressCreateRequest
from storefront.models import Address


def _address_not_found() -> AppError:
    return AppError(code=404102, message="Address not found", status_code=404)


def _clear_default(session: Session, user_id: uuid.UUID) -> None:
    session.exec(
        update(Address)
        .where(Address.user_id == user_id, Address.is_default.is_(True))
        .values(is_default=False)
    )


def list_addresses(*, session: Session, user_id: uuid.UUID) -> list[Address]:
    """用户地址列表，默认地址排在最前"""
    statement = (
        select(Address)
        .where(Address.user_id == user_id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
    )
    return list(session.exec(statement).all())


def create_address(
    *, session: Session, user_id: uuid.UUID | None, data: AddressCreateRequest
) -> Address:
    """
    创建地址

    游客（user_id 为空）创建的地址只用于本次下单，不能设为默认。
    用户的第一条地址自动成为默认地址。
    """
    is_default = False
    if user_id is not None:
        has_address = session.exec(
            select(Address.id).where(Address.user_id == user_id)
        ).first()
        is_default = data.is_default or has_address is None
        if is_default:
            _clear_default(session, user_id)

    address = Address(
        **data.model_dump(exclude={"is_default"}),
        user_id=user_id,
        is_default=is_default,
    )
    session.add(address)
    session.commit()
    session.refresh(address)
    return address


def delete_address(*, session: Session, user_id: uuid.UUID, address_id: uuid.UUID) -> None:
    """
    删除用户自己的地址

    已下单的订单通过外键 SET NULL 保留订单本身。

    Raises:
        AppError: 地址不存在或不属于该用户（404）
    """
    address = session.get(Address, address_id)
    if not address or address.user_id != user_id:
        raise _address_not_found()
    session.delete(address)
    session.commit()


def set_default_address(
    *, session: Session, user_id: uuid.UUID, address_id: uuid.UUID
) -> Address:
    """把一条地址设为默认，同一用户的其他地址取消默认"""
    address = session.get(Address, address_id)
    if not address or address.user_id != user_id:
        raise _address_not_found()
    _clear_default(session, user_id)
    address.is_default = True
    session.add(address)
    session.commit()
    session.refresh(address)
    return address
