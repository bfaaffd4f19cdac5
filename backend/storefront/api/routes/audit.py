"""
审计日志路由模块（后台）

- GET /admin/audit-logs: 最近的审计日志（可按实体类型、操作过滤）
- GET /admin/audit-logs/{entity_type}/{entity_id}: 单个实体的修改历史
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from storefront import crud
from storefront.api.deps import CurrentAdmin, SessionDep
from storefront.api.schemas import ApiEnvelope, AuditLogData
from storefront.models import AuditLog

router = APIRouter(prefix="/admin/audit-logs", tags=["admin-audit"])


def _to_data(rows: list[tuple[AuditLog, str | None]]) -> list[AuditLogData]:
    return [
        AuditLogData(
            id=log.id,
            admin_id=log.admin_id,
            admin_name=admin_name,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            action=log.action,
            old_value=log.old_value,
            new_value=log.new_value,
            created_at=log.created_at,
        )
        for log, admin_name in rows
    ]


@router.get("", response_model=ApiEnvelope)
def list_logs(
    session: SessionDep,
    _: CurrentAdmin,
    entity_type: str | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
) -> ApiEnvelope:
    rows = crud.list_audit_logs(
        session=session, entity_type=entity_type, action=action, limit=limit
    )
    return ApiEnvelope(data=_to_data(rows))


@router.get("/{entity_type}/{entity_id}", response_model=ApiEnvelope)
def entity_history(
    session: SessionDep, _: CurrentAdmin, entity_type: str, entity_id: uuid.UUID
) -> ApiEnvelope:
    rows = crud.get_entity_history(session=session, entity_type=entity_type, entity_id=entity_id)
    return ApiEnvelope(data=_to_data(rows))
