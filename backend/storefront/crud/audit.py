"""审计日志 CRUD 操作"""
import uuid
from typing import Any

from sqlmodel import Session, select

from storefront.models import AuditLog, User


def record_audit(
    *,
    session: Session,
    admin_id: uuid.UUID | None,
    entity_type: str,
    entity_id: uuid.UUID,
    action: str,
    old_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> AuditLog:
    """追加一条审计日志（不提交，随调用方的事务一起提交或回滚）"""
    log = AuditLog(
        admin_id=admin_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_value=old_value,
        new_value=new_value,
    )
    session.add(log)
    return log


def list_audit_logs(
    *,
    session: Session,
    entity_type: str | None = None,
    action: str | None = None,
    limit: int = 50,
) -> list[tuple[AuditLog, str | None]]:
    """按时间倒序查询审计日志，附带操作人名称；"all" 表示不过滤"""
    stmt = select(AuditLog, User.name).join(User, AuditLog.admin_id == User.id, isouter=True)
    if entity_type and entity_type != "all":
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if action and action != "all":
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.order_by(AuditLog.created_at.desc()).limit(limit)
    return list(session.exec(stmt).all())


def get_entity_history(
    *, session: Session, entity_type: str, entity_id: uuid.UUID
) -> list[tuple[AuditLog, str | None]]:
    """查询单个实体的全部修改历史"""
    stmt = (
        select(AuditLog, User.name)
        .join(User, AuditLog.admin_id == User.id, isouter=True)
        .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at.desc())
    )
    return list(session.exec(stmt).all())
