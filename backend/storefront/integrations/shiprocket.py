"""
Shiprocket 物流聚合平台集成模块

封装 Shiprocket 的物流相关 API，包括：
- 登录（auth/login），获取 Bearer token
- 物流可达性查询（courier/serviceability）
- 创建订单（orders/create/adhoc）
- 分配运单号（courier/assign/awb）

每次操作前都重新登录，不在进程内缓存 token。
支持模拟模式（mock），用于本地开发时不需要真实 API 调用。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx

from storefront.api.errors import AppError, upstream_error
from storefront.core.config import settings

logger = logging.getLogger(__name__)

# API 路径常量
_LOGIN_PATH = "/auth/login"
_SERVICEABILITY_PATH = "/courier/serviceability/"
_CREATE_ORDER_PATH = "/orders/create/adhoc"
_ASSIGN_AWB_PATH = "/courier/assign/awb"


@dataclass(frozen=True)
class CourierQuote:
    """可用快递公司报价"""
    id: str
    name: str
    price: Decimal
    time: str
    estimated_delivery_days: str | None = None
    is_cod: bool = False


@dataclass(frozen=True)
class ShipmentCreated:
    """创建物流订单结果"""
    order_id: str
    shipment_id: str
    status: str | None = None
    raw: dict[str, Any] | None = None


@dataclass(frozen=True)
class AwbAssigned:
    """分配运单号结果"""
    awb_code: str
    courier_name: str | None = None
    courier_company_id: str | None = None
    raw: dict[str, Any] | None = None


class ShiprocketClient:
    """
    Shiprocket API 客户端

    所有接口都使用 Authorization: Bearer <token>，token 由 auth/login 获取。
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._mock = settings.SHIPROCKET_MOCK
        self._base_url = settings.SHIPROCKET_BASE_URL.rstrip("/")
        self._email = settings.SHIPROCKET_EMAIL
        self._password = settings.SHIPROCKET_PASSWORD
        self._timeout = settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, transport=self._transport)

    def _request(
        self,
        client: httpx.Client,
        method: str,
        path: str,
        *,
        code: int,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        发送请求并返回 JSON

        Raises:
            AppError: 网络错误、非 2xx 响应或返回不是 JSON 对象（502）
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            r = client.request(method, f"{self._base_url}{path}", headers=headers, **kwargs)
            data = r.json()
        except httpx.HTTPError as e:
            raise upstream_error(code, f"Shiprocket {path} error: {e}")
        except ValueError:
            raise upstream_error(code, f"Shiprocket {path} invalid response")
        if not isinstance(data, dict):
            raise upstream_error(code, f"Shiprocket {path} invalid response")
        if r.status_code >= 400:
            logger.error("Shiprocket %s failed: %s %s", path, r.status_code, data.get("message"))
            raise upstream_error(code, str(data.get("message") or f"Shiprocket {path} failed"))
        return data

    def _login(self, client: httpx.Client) -> str:
        if not self._email or not self._password:
            raise AppError(
                code=500401,
                message="Shiprocket credentials not configured",
                status_code=500,
            )
        data = self._request(
            client,
            "POST",
            _LOGIN_PATH,
            code=502401,
            json={"email": self._email, "password": self._password},
        )
        token = data.get("token")
        if not token:
            raise upstream_error(502401, "Failed to authenticate with Shiprocket")
        return str(token)

    def check_serviceability(
        self,
        *,
        pickup_postcode: str,
        delivery_postcode: str,
        declared_value: Decimal,
        weight: float | None = None,
        cod: bool = False,
    ) -> list[CourierQuote]:
        """
        查询物流可达性和报价

        包裹尺寸使用配置中的默认值，只支持预付订单（cod=0）。

        Returns:
            可用快递公司列表（无可用快递时为空列表）
        """
        if self._mock:
            return [
                CourierQuote(
                    id="1",
                    name="Mock Express",
                    price=Decimal("60.00"),
                    time="2-4 Days",
                    estimated_delivery_days="3",
                )
            ]

        params = {
            "pickup_postcode": pickup_postcode,
            "delivery_postcode": delivery_postcode,
            "weight": str(weight or settings.SHIPPING_PACKAGE_WEIGHT_KG),
            "cod": "1" if cod else "0",
            "declared_value": str(declared_value),
            "height": str(settings.SHIPPING_PACKAGE_HEIGHT_CM),
            "length": str(settings.SHIPPING_PACKAGE_LENGTH_CM),
            "breadth": str(settings.SHIPPING_PACKAGE_BREADTH_CM),
        }
        with self._client() as client:
            token = self._login(client)
            data = self._request(
                client, "GET", _SERVICEABILITY_PATH, code=502402, token=token, params=params
            )

        companies = (data.get("data") or {}).get("available_courier_companies")
        if data.get("status") != 200 or not companies:
            return []
        return [
            CourierQuote(
                id=str(c.get("courier_company_id")),
                name=str(c.get("courier_name") or ""),
                price=Decimal(str(c.get("rate") or "0")),
                time=str(c.get("etd") or "2-4 Days"),
                estimated_delivery_days=(
                    str(c["estimated_delivery_days"])
                    if c.get("estimated_delivery_days") is not None
                    else None
                ),
                is_cod=c.get("cod") == 1,
            )
            for c in companies
        ]

    def create_order(self, payload: dict[str, Any]) -> ShipmentCreated:
        """
        创建物流订单（adhoc）

        Args:
            payload: Shiprocket 订单数据（见 services.shipping.build_shipment_payload）
        """
        if self._mock:
            return ShipmentCreated(
                order_id=f"SR{payload.get('order_id')}"[:32],
                shipment_id=f"SH{payload.get('order_id')}"[:32],
                status="NEW",
                raw={"mock": True},
            )

        with self._client() as client:
            token = self._login(client)
            data = self._request(
                client, "POST", _CREATE_ORDER_PATH, code=502403, token=token, json=payload
            )

        if not data.get("order_id") or not data.get("shipment_id"):
            raise upstream_error(502404, "Shiprocket create order invalid response")
        return ShipmentCreated(
            order_id=str(data["order_id"]),
            shipment_id=str(data["shipment_id"]),
            status=str(data.get("status")) if data.get("status") is not None else None,
            raw=data,
        )

    def assign_awb(self, *, shipment_id: str, courier_id: str) -> AwbAssigned:
        """为物流订单分配运单号（AWB）"""
        if self._mock:
            return AwbAssigned(
                awb_code=f"AWB{shipment_id}"[:32],
                courier_name="Mock Express",
                courier_company_id=courier_id,
                raw={"mock": True},
            )

        with self._client() as client:
            token = self._login(client)
            data = self._request(
                client,
                "POST",
                _ASSIGN_AWB_PATH,
                code=502405,
                token=token,
                json={"shipment_id": shipment_id, "courier_id": courier_id},
            )

        # 返回格式：{"awb_assign_status": 1, "response": {"data": {"awb_code": ...}}}
        assigned = ((data.get("response") or {}).get("data")) or {}
        if data.get("awb_assign_status") != 1 or not assigned.get("awb_code"):
            raise upstream_error(
                502406, str(data.get("message") or "Shiprocket AWB assignment failed")
            )
        return AwbAssigned(
            awb_code=str(assigned["awb_code"]),
            courier_name=assigned.get("courier_name"),
            courier_company_id=(
                str(assigned["courier_company_id"])
                if assigned.get("courier_company_id") is not None
                else courier_id
            ),
            raw=data,
        )


def get_shiprocket_client() -> ShiprocketClient:
    """按当前配置创建客户端（测试中可以替换）"""
    return ShiprocketClient()
