"""
FastAPI 应用主入口

这是应用的启动文件，负责：
1. 创建 FastAPI 应用实例
2. 配置全局中间件（CORS、Sentry）和日志
3. 注册全局异常处理器
4. 注册 API 路由

运行方式：
    uvicorn storefront.main:app --reload  # 开发模式
    fastapi dev storefront/main.py  # 或使用 FastAPI CLI
"""
import logging

import sentry_sdk  # Sentry 错误监控
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from storefront.api.errors import AppError
from storefront.api.main import api_router
from storefront.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def custom_generate_unique_id(route: APIRoute) -> str:
    """
    自定义 OpenAPI 操作 ID 生成函数

    格式：{tag}-{route_name}，例如 "webhooks-phonepe_webhook"
    """
    return f"{route.tags[0]}-{route.name}"


# 初始化 Sentry 错误监控（仅在非本地环境）
if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":  # pragma: no cover
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
)


def _error_response(status_code: int, code: int, message: str, data: object = None) -> JSONResponse:
    """统一错误响应：{"success": false, "error": ..., "code": ..., "data": ...}"""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code, "data": data},
    )


@app.exception_handler(AppError)
async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    """应用自定义异常处理器"""
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(HTTPException)
async def http_error_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """
    HTTP 异常处理器

    detail 为 {"code", "message"} 字典时直接使用，否则错误码为状态码 * 1000。
    """
    if isinstance(exc.detail, dict) and {"code", "message"} <= set(exc.detail.keys()):
        return _error_response(
            exc.status_code, int(exc.detail["code"]), str(exc.detail["message"])
        )
    return _error_response(exc.status_code, exc.status_code * 1000, str(exc.detail))


def _jsonable_errors(exc: RequestValidationError) -> list:
    # ctx 中可能带有异常对象（如 ValueError），不能直接序列化
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """请求验证错误处理器（字段类型错误、必填字段缺失等）"""
    return _error_response(
        422,
        422000,
        "Validation error",
        {"errors": _jsonable_errors(exc)},
    )


# 配置 CORS（跨域资源共享）中间件
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# 所有路由都会添加 /api 前缀
app.include_router(api_router, prefix=settings.API_PREFIX)
