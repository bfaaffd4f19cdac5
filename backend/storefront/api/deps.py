"""
FastAPI 依赖注入模块

提供可复用的依赖项，用于路由处理函数中。

- SessionDep: 请求级数据库会话
- OptionalUser: 可选登录用户（游客下单时为 None）
- CurrentUser: 必须登录的用户
- CurrentAdmin: 后台管理员（非管理员返回 403）
"""
import uuid
from collections.abc import Generator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlmodel import Session

from storefront.api.schemas import TokenPayload
from storefront.core import security
from storefront.core.db import engine
from storefront.enums import UserRole
from storefront.models import User

# 从 Authorization: Bearer <token> 中提取 token；auto_error=False 允许游客访问
reusable_oauth2 = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（依赖注入）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[HTTPAuthorizationCredentials | None, Depends(reusable_oauth2)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _user_from_token(session: Session, token: HTTPAuthorizationCredentials) -> User:
    """
    从 JWT token 中解析用户

    Raises:
        HTTPException: token 无效、sub 缺失或用户不存在时返回 401
    """
    try:
        payload = security.decode_access_token(token.credentials)
        token_data = TokenPayload(**payload)
    except (jwt.InvalidTokenError, ValidationError):
        raise _credentials_error()
    if not token_data.sub:
        raise _credentials_error()
    try:
        user_id = uuid.UUID(token_data.sub)
    except ValueError:
        raise _credentials_error()
    user = session.get(User, user_id)
    if not user:
        raise _credentials_error("User not found")
    return user


def get_optional_user(session: SessionDep, token: TokenDep) -> User | None:
    """有 token 时解析用户，没有 token 视为游客"""
    if token is None:
        return None
    return _user_from_token(session, token)


def get_current_user(session: SessionDep, token: TokenDep) -> User:
    """获取当前登录用户，未登录返回 401"""
    if token is None:
        raise _credentials_error("Not authenticated")
    return _user_from_token(session, token)


def get_current_admin(session: SessionDep, token: TokenDep) -> User:
    """
    获取当前管理员

    Raises:
        HTTPException: 未登录 401，非管理员 403
    """
    if token is None:
        raise _credentials_error("Not authenticated")
    user = _user_from_token(session, token)
    if user.role != UserRole.admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


OptionalUser = Annotated[User | None, Depends(get_optional_user)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
