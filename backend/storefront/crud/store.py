"""店铺设置 CRUD 操作"""
import uuid

from sqlmodel import Session, select

from storefront.api.schemas import StoreSettingsData, StoreSettingsUpdateRequest
from storefront.models import StoreSettings, utc_now

from .audit import record_audit

# 这些列不能为空，请求里显式传 null 时忽略
_NOT_NULL_FIELDS = frozenset(
    {"store_name", "country", "is_tax_enabled", "tax_name", "tax_percentage"}
)


def get_store_settings(*, session: Session) -> StoreSettings:
    """读取店铺设置；还没有初始化时创建默认值"""
    store = session.exec(select(StoreSettings)).first()
    if not store:
        store = StoreSettings()
        session.add(store)
        session.commit()
        session.refresh(store)
    return store


def update_store_settings(
    *, session: Session, admin_id: uuid.UUID, data: StoreSettingsUpdateRequest
) -> StoreSettings:
    """
    更新店铺设置（只改提交了的字段）并记录审计日志

    审计日志只记录实际变化的字段。
    """
    store = get_store_settings(session=session)
    before = _snapshot(store)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key in _NOT_NULL_FIELDS:
            continue
        setattr(store, key, value)
    store.updated_at = utc_now()
    session.add(store)
    session.flush()

    after = _snapshot(store)
    changed = [key for key in after if key != "updated_at" and after[key] != before[key]]
    if changed:
        record_audit(
            session=session,
            admin_id=admin_id,
            entity_type="store_settings",
            entity_id=store.id,
            action="update",
            old_value={key: before[key] for key in changed},
            new_value={key: after[key] for key in changed},
        )
    session.commit()
    session.refresh(store)
    return store


def _snapshot(store: StoreSettings) -> dict:
    return StoreSettingsData.model_validate(store, from_attributes=True).model_dump(mode="json")
