"""
发货服务

- 下单前查询物流可达性（取件邮编来自店铺设置）
- 支付成功后在 Shiprocket 创建物流订单并分配运单号

创建物流订单不改变订单状态（仍为 paid），只回写物流平台的订单号、
包裹号和运单号，并追加一条履约记录。
"""
import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlmodel import Session, select

from storefront import crud
from storefront.api.errors import AppError
from storefront.core.config import settings
from storefront.enums import OrderStatus
from storefront.integrations.shiprocket import CourierQuote, ShiprocketClient
from storefront.models import (
    Address,
    Fulfillment,
    Order,
    OrderItem,
    Product,
    ProductVariant,
    StoreSettings,
    User,
    utc_now,
)

logger = logging.getLogger(__name__)

# 只有已支付的订单可以创建物流订单
SHIPPABLE_STATUSES = (OrderStatus.paid, OrderStatus.processing)


def get_shipping_options(
    *,
    session: Session,
    client: ShiprocketClient,
    delivery_pincode: str,
    declared_value: Decimal,
) -> list[CourierQuote]:
    """
    查询收货邮编的可用快递和运费

    Raises:
        AppError: 店铺未配置取件邮编（400）、没有可用快递（404）
    """
    store = session.exec(select(StoreSettings)).first()
    if not store or not store.pincode:
        raise AppError(code=400401, message="Store pickup pincode not configured", status_code=400)

    quotes = client.check_serviceability(
        pickup_postcode=store.pincode,
        delivery_postcode=delivery_pincode,
        declared_value=declared_value,
    )
    if not quotes:
        raise AppError(
            code=404401,
            message="No shipping partners available for this location",
            status_code=404,
        )
    return quotes


def _address_fields(prefix: str, address: Address, email: str | None) -> dict[str, Any]:
    return {
        f"{prefix}_customer_name": address.full_name,
        f"{prefix}_last_name": "",
        f"{prefix}_address": address.line1,
        f"{prefix}_address_2": address.line2 or "",
        f"{prefix}_city": address.city,
        f"{prefix}_pincode": address.pincode,
        f"{prefix}_state": address.state,
        f"{prefix}_country": address.country,
        f"{prefix}_email": address.email or email or "",
        f"{prefix}_phone": address.phone,
    }


def build_shipment_payload(
    *,
    order: Order,
    lines: list[tuple[OrderItem, ProductVariant, str]],
    shipping: Address,
    billing: Address | None,
    email: str | None = None,
) -> dict[str, Any]:
    """
    组装 Shiprocket adhoc 订单数据

    Args:
        lines: (订单明细, 规格, 商品名称)
        billing: 为空或与收货地址相同时 shipping_is_billing=True
    """
    billing = billing or shipping
    weight = sum(
        (variant.weight or 0) * item.quantity for item, variant, _ in lines
    ) or settings.SHIPPING_PACKAGE_WEIGHT_KG

    payload: dict[str, Any] = {
        "order_id": str(order.id),
        "order_date": order.created_at.strftime("%Y-%m-%d %H:%M"),
        "pickup_location": settings.SHIPROCKET_PICKUP_LOCATION,
        **_address_fields("billing", billing, email),
        "shipping_is_billing": billing.id == shipping.id,
        "order_items": [
            {
                "name": name,
                "sku": variant.sku,
                "units": item.quantity,
                "selling_price": str(item.price_at_purchase),
            }
            for item, variant, name in lines
        ],
        "payment_method": "Prepaid",
        "shipping_charges": str(order.shipping_amount),
        "total_discount": str(order.discount_amount),
        "sub_total": str(order.subtotal),
        "length": settings.SHIPPING_PACKAGE_LENGTH_CM,
        "breadth": settings.SHIPPING_PACKAGE_BREADTH_CM,
        "height": settings.SHIPPING_PACKAGE_HEIGHT_CM,
        "weight": round(weight, 3),
    }
    if billing.id != shipping.id:
        payload.update(_address_fields("shipping", shipping, email))
    return payload


def create_shipment_for_order(
    *, session: Session, client: ShiprocketClient, order_id: uuid.UUID
) -> Order:
    """
    在物流平台创建订单并分配运单号

    已经创建过物流订单的直接返回（不重复创建）；
    下单时没有选择快递公司的只创建物流订单，不分配运单号。

    Raises:
        AppError: 订单不存在（404）、订单未支付（409）、缺少收货地址（400）、
            物流平台调用失败（502）
    """
    order = crud.get_order(session=session, order_id=order_id)
    if OrderStatus(order.status) not in SHIPPABLE_STATUSES:
        raise AppError(
            code=409401,
            message=f"Cannot create shipment for order in status {OrderStatus(order.status).value}",
            status_code=409,
        )
    if order.shiprocket_shipment_id:
        logger.info("Order %s already has shipment %s", order.id, order.shiprocket_shipment_id)
        return order

    shipping = session.get(Address, order.shipping_address_id) if order.shipping_address_id else None
    if not shipping:
        raise AppError(code=400402, message="Order has no shipping address", status_code=400)
    billing = session.get(Address, order.billing_address_id) if order.billing_address_id else None
    user = session.get(User, order.user_id) if order.user_id else None

    lines = list(
        session.exec(
            select(OrderItem, ProductVariant, Product.name)
            .join(ProductVariant, OrderItem.product_variant_id == ProductVariant.id)
            .join(Product, ProductVariant.product_id == Product.id)
            .where(OrderItem.order_id == order.id)
        ).all()
    )
    payload = build_shipment_payload(
        order=order,
        lines=lines,
        shipping=shipping,
        billing=billing,
        email=user.email if user else None,
    )

    created = client.create_order(payload)
    order.shiprocket_order_id = created.order_id
    order.shiprocket_shipment_id = created.shipment_id
    order.updated_at = utc_now()
    session.add(order)
    # 先保存物流订单号，分配运单号失败时不会重复创建物流订单
    session.commit()
    logger.info("Created Shiprocket order %s for order %s", created.order_id, order.id)

    if order.courier_company_id:
        awb = client.assign_awb(
            shipment_id=created.shipment_id, courier_id=order.courier_company_id
        )
        order.awb_code = awb.awb_code
        order.courier_name = awb.courier_name or order.courier_name
        order.updated_at = utc_now()
        session.add(order)
        session.add(
            Fulfillment(
                order_id=order.id,
                tracking_number=awb.awb_code,
                carrier=order.courier_name,
                status="awb_assigned",
            )
        )
        session.commit()
        logger.info("Assigned AWB %s to order %s", awb.awb_code, order.id)

    session.refresh(order)
    return order
