"""
工具路由模块

健康检查：同时确认数据库可以连接。
"""
from fastapi import APIRouter
from sqlmodel import select

from storefront.api.deps import SessionDep
from storefront.api.schemas import ApiEnvelope

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/", response_model=ApiEnvelope)
def health_check(session: SessionDep) -> ApiEnvelope:
    """
    健康检查端点（负载均衡器 / 容器探活）

    请求路径: GET /api/utils/health-check/
    """
    session.exec(select(1))
    return ApiEnvelope(data={"database": "ok"})
