"""
PhonePe 支付网关集成模块

封装 PhonePe 的请求签名、回调解析和发起支付接口：
- 签名：X-VERIFY = SHA256(base64Payload + apiEndpoint + saltKey) + "###" + saltIndex
- 回调：三种信封格式（legacy base64 / inline JSON / v2 事件），统一解析为 PaymentNotification
- 发起支付：v1 /pg/v1/pay（X-VERIFY 签名）或 v2 /checkout/v2/pay（OAuth O-Bearer）

支持模拟模式（mock），用于本地开发时不需要真实 API 调用。
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from storefront.api.errors import AppError, upstream_error
from storefront.core.config import settings
from storefront.enums import NotificationVersion

logger = logging.getLogger(__name__)

# API 路径常量
_PAY_V1_PATH = "/pg/v1/pay"
_OAUTH_PATH = "/v1/oauth/token"
_PAY_V2_PATH = "/checkout/v2/pay"

# 回调结果码
SUCCESS_CODE = "PAYMENT_SUCCESS"
# 明确失败的结果码：支付记录和订单都标记为失败
ERROR_CODES = frozenset(
    {"PAYMENT_ERROR", "PAYMENT_DECLINED", "AUTHORIZATION_FAILED", "TIMED_OUT"}
)


def base64_encode(payload: dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(payload).encode()).decode()


def sign_request(payload: str, endpoint: str, salt_key: str, salt_index: str) -> str:
    """请求签名：SHA256(base64Payload + endpoint + saltKey)###saltIndex"""
    digest = hashlib.sha256(f"{payload}{endpoint}{salt_key}".encode()).hexdigest()
    return f"{digest}###{salt_index}"


def verify_callback_signature(
    payload: str, x_verify: str | None, salt_key: str, salt_index: str
) -> bool:
    """回调签名：SHA256(base64Payload + saltKey)###saltIndex"""
    if not x_verify:
        return False
    digest = hashlib.sha256(f"{payload}{salt_key}".encode()).hexdigest()
    return hmac.compare_digest(f"{digest}###{salt_index}", x_verify)


def verify_webhook_authorization(
    authorization: str | None, username: str, password: str
) -> bool:
    """
    v2 webhook 认证

    PhonePe 发送 Authorization: SHA256(username:password)，
    头部值可能带 "SHA256 " 前缀。
    """
    if not authorization:
        return False
    expected = hashlib.sha256(f"{username}:{password}".encode()).hexdigest()
    received = authorization.strip()
    if received[:6].upper() == "SHA256":
        received = received[6:].strip()
    return hmac.compare_digest(received.lower(), expected)


@dataclass(frozen=True)
class PaymentNotification:
    """
    支付网关回调（解析后的统一结构）

    - version: 信封版本
    - code: 结果码（PAYMENT_SUCCESS 等）；v2 的退款等事件为 None，表示忽略
    - merchant_transaction_id: 商户交易号
    - provider_transaction_id: 网关侧交易号
    - data: 网关业务数据
    - raw: 原始请求体（保存到 Payment.raw_payload）
    - signed_payload: legacy 信封中参与签名的 base64 字符串
    """
    version: NotificationVersion
    code: str | None
    merchant_transaction_id: str
    provider_transaction_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)
    signed_payload: str | None = None

    @property
    def is_success(self) -> bool:
        return self.code == SUCCESS_CODE

    @property
    def is_error(self) -> bool:
        return self.code in ERROR_CODES


def _invalid(message: str) -> AppError:
    return AppError(code=400301, message=message, status_code=400)


def _decode_legacy(response: Any) -> dict[str, Any]:
    if not isinstance(response, str) or not response:
        raise _invalid("Invalid response envelope")
    try:
        decoded = json.loads(base64.b64decode(response, validate=True))
    except (binascii.Error, ValueError):
        raise _invalid("Invalid response envelope")
    if not isinstance(decoded, dict):
        raise _invalid("Invalid response envelope")
    return decoded


def _v2_code(event: str, state: str) -> str | None:
    if event == "checkout.order.completed" and state == "COMPLETED":
        return SUCCESS_CODE
    if event == "checkout.order.failed" or state == "FAILED":
        return "PAYMENT_ERROR"
    return None


def parse_notification(body: Any) -> PaymentNotification:
    """
    解析回调请求体

    - 有 response 字段：legacy 信封（base64 编码的 {code, data}）
    - 有 event 字段：v2 事件 {event, payload}
    - 否则：inline {code, data}

    请求体不是 JSON 对象时按信封错误处理。

    Raises:
        AppError: 信封格式错误或缺少商户交易号（400）
    """
    if not isinstance(body, dict):
        raise _invalid("Invalid webhook payload")
    if "response" in body:
        decoded = _decode_legacy(body.get("response"))
        version = NotificationVersion.legacy
        signed_payload: str | None = body["response"]
    elif "event" in body:
        payload = body.get("payload")
        if not isinstance(payload, dict):
            raise _invalid("Invalid webhook payload")
        merchant_order_id = str(payload.get("merchantOrderId") or "")
        if not merchant_order_id:
            raise _invalid("Missing merchantOrderId")
        details = payload.get("paymentDetails") or []
        first = details[0] if isinstance(details, list) and details else {}
        provider_txn = (first.get("transactionId") if isinstance(first, dict) else None) or payload.get(
            "orderId"
        )
        return PaymentNotification(
            version=NotificationVersion.v2,
            code=_v2_code(str(body.get("event") or ""), str(payload.get("state") or "")),
            merchant_transaction_id=merchant_order_id,
            provider_transaction_id=str(provider_txn) if provider_txn else None,
            data=payload,
            raw=body,
        )
    else:
        decoded = body
        version = NotificationVersion.inline
        signed_payload = None

    data = decoded.get("data")
    if not isinstance(data, dict):
        raise _invalid("Invalid webhook payload")
    merchant_txn = str(data.get("merchantTransactionId") or "")
    if not merchant_txn:
        raise _invalid("Missing merchantTransactionId")
    code = decoded.get("code")
    provider_txn = data.get("transactionId")
    return PaymentNotification(
        version=version,
        code=str(code) if code else None,
        merchant_transaction_id=merchant_txn,
        provider_transaction_id=str(provider_txn) if provider_txn else None,
        data=data,
        raw=body if version == NotificationVersion.inline else {**body, "decoded": decoded},
        signed_payload=signed_payload,
    )


@dataclass(frozen=True)
class PaymentRedirect:
    """发起支付成功：把用户跳转到网关支付页"""
    redirect_url: str
    provider_order_id: str | None = None
    raw: dict[str, Any] | None = None


@dataclass(frozen=True)
class PaymentInitiationFailed:
    """发起支付失败：网关返回了业务错误"""
    message: str
    code: str | None = None
    raw: dict[str, Any] | None = None


PaymentInitiation = PaymentRedirect | PaymentInitiationFailed


class PhonePeClient:
    """
    PhonePe API 客户端

    API 文档：
    - v1 pay: POST /pg/v1/pay，body {"request": base64}，头部 X-VERIFY
    - v2 oauth: POST /v1/oauth/token（client_credentials，表单提交）
    - v2 pay: POST /checkout/v2/pay，头部 Authorization: O-Bearer <token>
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._mock = settings.PHONEPE_MOCK
        self._version = settings.PHONEPE_API_VERSION
        self._base_url = settings.PHONEPE_BASE_URL.rstrip("/")
        self._timeout = settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, transport=self._transport)

    def initiate_payment(
        self,
        *,
        merchant_transaction_id: str,
        amount_paise: int,
        redirect_url: str,
        callback_url: str,
        merchant_user_id: str,
    ) -> PaymentInitiation:
        """
        发起支付

        Args:
            merchant_transaction_id: 商户交易号
            amount_paise: 金额（单位：派士，1 卢比 = 100 派士）
            redirect_url: 支付完成后浏览器跳转地址
            callback_url: 服务端回调地址（v1 使用）
            merchant_user_id: 商户侧用户标识（游客用交易号代替）

        Raises:
            AppError: 网络错误或网关返回无法解析的数据（502）
        """
        if self._mock:
            return PaymentRedirect(
                redirect_url=f"{self._base_url}/mock/pay/{merchant_transaction_id}",
                provider_order_id=f"OMO{merchant_transaction_id}",
                raw={"mock": True},
            )
        if self._version == "v2":
            return self._initiate_v2(
                merchant_transaction_id=merchant_transaction_id,
                amount_paise=amount_paise,
                redirect_url=redirect_url,
            )
        return self._initiate_v1(
            merchant_transaction_id=merchant_transaction_id,
            amount_paise=amount_paise,
            redirect_url=redirect_url,
            callback_url=callback_url,
            merchant_user_id=merchant_user_id,
        )

    def _initiate_v1(
        self,
        *,
        merchant_transaction_id: str,
        amount_paise: int,
        redirect_url: str,
        callback_url: str,
        merchant_user_id: str,
    ) -> PaymentInitiation:
        if not settings.PHONEPE_MERCHANT_ID or not settings.PHONEPE_SALT_KEY:
            raise AppError(code=500301, message="PhonePe merchant not configured", status_code=500)

        payload = {
            "merchantId": settings.PHONEPE_MERCHANT_ID,
            "merchantTransactionId": merchant_transaction_id,
            "merchantUserId": merchant_user_id,
            "amount": amount_paise,
            "redirectUrl": redirect_url,
            "redirectMode": "POST",
            "callbackUrl": callback_url,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        encoded = base64_encode(payload)
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": sign_request(
                encoded, _PAY_V1_PATH, settings.PHONEPE_SALT_KEY, settings.PHONEPE_SALT_INDEX
            ),
        }
        try:
            with self._client() as client:
                r = client.post(f"{self._base_url}{_PAY_V1_PATH}", json={"request": encoded}, headers=headers)
                data = r.json()
        except httpx.HTTPError as e:
            raise upstream_error(502301, f"PhonePe pay error: {e}")
        except ValueError:
            raise upstream_error(502302, "PhonePe pay invalid response")

        if not isinstance(data, dict):
            raise upstream_error(502302, "PhonePe pay invalid response")

        redirect = (
            ((data.get("data") or {}).get("instrumentResponse") or {}).get("redirectInfo") or {}
        ).get("url")
        if data.get("success") and redirect:
            return PaymentRedirect(redirect_url=str(redirect), raw=data)

        logger.error("PhonePe v1 initiation failed: %s %s", r.status_code, data.get("code"))
        return PaymentInitiationFailed(
            message=str(data.get("message") or "Payment initiation failed"),
            code=str(data.get("code")) if data.get("code") else None,
            raw=data,
        )

    def _oauth_token(self) -> str:
        """获取 v2 OAuth access token（client_credentials）"""
        if not settings.PHONEPE_CLIENT_ID or not settings.PHONEPE_CLIENT_SECRET:
            raise AppError(code=500302, message="PhonePe OAuth client not configured", status_code=500)
        form = {
            "client_id": settings.PHONEPE_CLIENT_ID,
            "client_version": settings.PHONEPE_CLIENT_VERSION,
            "client_secret": settings.PHONEPE_CLIENT_SECRET,
            "grant_type": "client_credentials",
        }
        try:
            with self._client() as client:
                r = client.post(f"{self._base_url}{_OAUTH_PATH}", data=form)
                data = r.json()
        except httpx.HTTPError as e:
            raise upstream_error(502303, f"PhonePe OAuth error: {e}")
        except ValueError:
            raise upstream_error(502304, "PhonePe OAuth invalid response")

        token = data.get("access_token") if isinstance(data, dict) else None
        if r.status_code >= 400 or not token:
            logger.error("PhonePe OAuth failed: %s", r.status_code)
            message = data.get("message") if isinstance(data, dict) else None
            raise upstream_error(502305, str(message or f"Failed to get PhonePe OAuth token: {r.status_code}"))
        return str(token)

    def _initiate_v2(
        self, *, merchant_transaction_id: str, amount_paise: int, redirect_url: str
    ) -> PaymentInitiation:
        token = self._oauth_token()
        payload = {
            "merchantOrderId": merchant_transaction_id,
            "amount": amount_paise,
            "paymentFlow": {
                "type": "PG_CHECKOUT",
                "merchantUrls": {"redirectUrl": redirect_url},
            },
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"O-Bearer {token}",
        }
        try:
            with self._client() as client:
                r = client.post(f"{self._base_url}{_PAY_V2_PATH}", json=payload, headers=headers)
                data = r.json()
        except httpx.HTTPError as e:
            raise upstream_error(502306, f"PhonePe pay error: {e}")
        except ValueError:
            raise upstream_error(502307, "PhonePe pay invalid response")

        if isinstance(data, dict) and data.get("orderId") and data.get("redirectUrl"):
            return PaymentRedirect(
                redirect_url=str(data["redirectUrl"]),
                provider_order_id=str(data["orderId"]),
                raw=data,
            )

        data = data if isinstance(data, dict) else {"response": data}
        logger.error("PhonePe v2 initiation failed: %s %s", r.status_code, data.get("code"))
        return PaymentInitiationFailed(
            message=str(data.get("message") or "Payment initiation failed"),
            code=str(data.get("code")) if data.get("code") else None,
            raw=data,
        )


def get_phonepe_client() -> PhonePeClient:
    """按当前配置创建客户端（测试中可以替换）"""
    return PhonePeClient()
