"""
支付回调路由模块

- POST /webhooks/phonepe: PhonePe 服务端回调（legacy / inline / v2 三种信封）
- GET|POST /webhooks/phonepe/redirect: 用户支付完成后浏览器跳转回来的地址

回调响应保持 PhonePe 期望的格式：成功 {"success": true}，失败 {"error": ...}。
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Header, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from storefront.api.deps import SessionDep
from storefront.api.errors import AppError
from storefront.core.config import settings
from storefront.enums import WebhookOutcome
from storefront.integrations.phonepe import ERROR_CODES, parse_notification
from storefront.integrations.shiprocket import get_shiprocket_client
from storefront.services import payments, shipping

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/phonepe")
def phonepe_webhook(
    session: SessionDep,
    payload: Any = Body(...),
    x_verify: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> Any:
    """
    PhonePe 支付回调

    请求路径: POST /api/webhooks/phonepe

    支付确认成功后尝试创建物流订单；物流失败只记录日志，
    回调仍然返回成功（支付已经确认，不需要网关重发）。
    """
    try:
        notification = parse_notification(payload)
        payments.verify_notification(
            notification, x_verify=x_verify, authorization=authorization
        )
        outcome, order_id = payments.handle_notification(
            session=session, notification=notification
        )
    except AppError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    except Exception as e:
        logger.exception("PhonePe webhook error")
        return JSONResponse(status_code=500, content={"error": str(e)})

    if outcome == WebhookOutcome.confirmed:
        try:
            shipping.create_shipment_for_order(
                session=session, client=get_shiprocket_client(), order_id=order_id
            )
        except Exception:
            session.rollback()
            logger.exception("Failed to create shipment for order %s", order_id)

    return {"success": True}


@router.api_route("/phonepe/redirect", methods=["GET", "POST"])
async def phonepe_redirect(
    request: Request,
    order_id: str | None = Query(default=None, alias="orderId"),
    code: str | None = Query(default=None),
) -> RedirectResponse:
    """
    支付完成后的浏览器跳转

    v1 网关以表单 POST 带回 code；v2 通常不带 code。
    这里只决定跳转页面，不修改任何数据，订单状态以服务端回调为准。
    """
    if code is None and request.method == "POST":
        form = await request.form()
        value = form.get("code")
        code = value if isinstance(value, str) else None

    logger.info("PhonePe redirect: method=%s order=%s code=%s", request.method, order_id, code)

    base_url = settings.APP_URL.rstrip("/")
    if not order_id:
        return RedirectResponse(f"{base_url}/checkout?error=SomethingWentWrong", status_code=303)
    if code in ERROR_CODES:
        return RedirectResponse(f"{base_url}/checkout?error=PaymentFailed", status_code=303)
    return RedirectResponse(f"{base_url}/checkout/success?orderId={order_id}", status_code=303)
