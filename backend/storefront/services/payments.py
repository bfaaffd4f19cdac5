"""
支付服务

- initiate_checkout: 按购物车创建订单和支付记录，并向 PhonePe 发起支付
- verify_notification: 校验回调签名（legacy X-VERIFY / v2 Authorization）
- handle_notification: 根据回调结果确认或标记失败

支付确认是幂等的：订单状态用条件更新 pending -> paid，
只有真正完成这次状态变化的回调才会扣减库存、核销优惠券，
与支付记录的更新在同一个事务中提交。重复回调只会刷新支付记录。
"""
import logging
import uuid
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import update
from sqlmodel import Session, select

from storefront import crud
from storefront.api.errors import AppError, payment_not_found
from storefront.api.schemas import CheckoutData, CheckoutRequest
from storefront.core.config import settings
from storefront.enums import NotificationVersion, OrderStatus, PaymentStatus, WebhookOutcome
from storefront.integrations.phonepe import (
    PaymentInitiationFailed,
    PaymentNotification,
    PhonePeClient,
    verify_callback_signature,
    verify_webhook_authorization,
)
from storefront.integrations.shiprocket import CourierQuote, ShiprocketClient
from storefront.models import (
    Address,
    Order,
    OrderItem,
    Payment,
    ProductVariant,
    StoreSettings,
    User,
    utc_now,
)
from storefront.services.shipping import get_shipping_options

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")

# 只有待支付的订单可以被支付回调推进
PAYABLE_STATUS = OrderStatus.pending
# 明确失败的回调可以把这些状态的订单标记为失败
FAILABLE_STATUSES = (OrderStatus.pending, OrderStatus.processing)


def new_merchant_transaction_id() -> str:
    """商户交易号：MT + 20 位十六进制（PhonePe 限制 38 位以内）"""
    return f"MT{uuid.uuid4().hex[:20].upper()}"


def to_paise(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _load_address(
    session: Session, address_id: uuid.UUID, user: User | None
) -> Address:
    address = session.get(Address, address_id)
    # 地址必须属于当前用户；游客只能使用游客地址
    if not address or address.user_id != (user.id if user else None):
        raise AppError(code=404102, message="Address not found", status_code=404)
    return address


def _courier_quote(
    session: Session,
    client: ShiprocketClient,
    address: Address,
    courier_company_id: str,
    declared_value: Decimal,
) -> CourierQuote:
    """按收货邮编重新查询报价，运费以快递平台返回的价格为准"""
    quotes = get_shipping_options(
        session=session,
        client=client,
        delivery_pincode=address.pincode,
        declared_value=declared_value,
    )
    for quote in quotes:
        if quote.id == courier_company_id:
            return quote
    raise AppError(code=400104, message="Selected courier is not available", status_code=400)


def initiate_checkout(
    *,
    session: Session,
    client: PhonePeClient,
    shipping_client: ShiprocketClient,
    user: User | None,
    body: CheckoutRequest,
) -> CheckoutData:
    """
    创建订单并发起支付

    金额全部在服务端计算：商品按当前售价，优惠按优惠券规则，
    税费按店铺设置，运费按所选快递重新查询的报价。

    Raises:
        AppError: 规格/地址不存在（404）、库存不足或优惠券无效（400）、
            所选快递不可用（400）、网关拒绝或调用失败（502）
    """
    quantities: OrderedDict[uuid.UUID, int] = OrderedDict()
    for line in body.items:
        quantities[line.variant_id] = quantities.get(line.variant_id, 0) + line.quantity

    variants: dict[uuid.UUID, ProductVariant] = {}
    for variant_id, quantity in quantities.items():
        variant = session.get(ProductVariant, variant_id)
        if not variant:
            raise AppError(code=404101, message="Variant not found", status_code=404)
        available = crud.get_available(session=session, variant_id=variant_id)
        if available is not None and available < quantity:
            raise AppError(
                code=400102,
                message=f"Insufficient stock for {variant.sku}",
                status_code=400,
            )
        variants[variant_id] = variant

    shipping = _load_address(session, body.shipping_address_id, user)
    billing = (
        _load_address(session, body.billing_address_id, user)
        if body.billing_address_id
        else shipping
    )

    subtotal = sum(
        (variants[vid].effective_price * qty for vid, qty in quantities.items()),
        Decimal("0.00"),
    ).quantize(_CENT)

    coupon_id = None
    discount = Decimal("0.00")
    if body.coupon_code:
        coupon, descriptor = crud.validate_coupon(
            session=session, code=body.coupon_code, amount=subtotal
        )
        coupon_id = coupon.id
        discount = descriptor.discount_amount

    tax = Decimal("0.00")
    store = session.exec(select(StoreSettings)).first()
    if store and store.is_tax_enabled and store.tax_percentage:
        tax = ((subtotal - discount) * Decimal(store.tax_percentage) / 100).quantize(
            _CENT, rounding=ROUND_HALF_UP
        )

    quote = _courier_quote(
        session, shipping_client, shipping, body.courier_company_id, subtotal - discount
    )
    shipping_amount = quote.price.quantize(_CENT)
    total = (subtotal - discount + tax + shipping_amount).quantize(_CENT)
    if total <= 0:
        raise AppError(code=400103, message="Order total must be positive", status_code=400)

    order = Order(
        user_id=user.id if user else None,
        status=OrderStatus.pending,
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        shipping_amount=shipping_amount,
        total_amount=total,
        currency=settings.CURRENCY,
        shipping_address_id=shipping.id,
        billing_address_id=billing.id,
        coupon_id=coupon_id,
        courier_name=quote.name,
        courier_company_id=body.courier_company_id,
    )
    session.add(order)
    session.flush()
    for variant_id, quantity in quantities.items():
        session.add(
            OrderItem(
                order_id=order.id,
                product_variant_id=variant_id,
                quantity=quantity,
                price_at_purchase=variants[variant_id].effective_price,
            )
        )
    payment = Payment(
        order_id=order.id,
        method="phonepe",
        merchant_transaction_id=new_merchant_transaction_id(),
        amount=total,
        status=PaymentStatus.initiated,
    )
    session.add(payment)
    session.commit()
    session.refresh(order)
    session.refresh(payment)
    logger.info(
        "Created order %s (total %s) with payment %s",
        order.id,
        total,
        payment.merchant_transaction_id,
    )

    callback_base = settings.APP_URL.rstrip("/")
    try:
        result = client.initiate_payment(
            merchant_transaction_id=payment.merchant_transaction_id,
            amount_paise=to_paise(total),
            redirect_url=(
                f"{callback_base}{settings.API_PREFIX}/webhooks/phonepe/redirect"
                f"?orderId={order.id}"
            ),
            callback_url=f"{callback_base}{settings.API_PREFIX}/webhooks/phonepe",
            merchant_user_id=str(user.id) if user else payment.merchant_transaction_id,
        )
    except AppError:
        _mark_initiation_failed(session, payment, None)
        raise

    if isinstance(result, PaymentInitiationFailed):
        _mark_initiation_failed(session, payment, result.raw)
        raise AppError(code=502308, message=result.message, status_code=502)

    if result.provider_order_id:
        payment.provider_transaction_id = result.provider_order_id
    payment.raw_payload = result.raw
    payment.updated_at = utc_now()
    session.add(payment)
    session.commit()

    return CheckoutData(
        order_id=order.id,
        merchant_transaction_id=payment.merchant_transaction_id,
        total_amount=total,
        redirect_url=result.redirect_url,
    )


def _mark_initiation_failed(session: Session, payment: Payment, raw: dict | None) -> None:
    payment.status = PaymentStatus.failed
    payment.raw_payload = raw
    payment.updated_at = utc_now()
    session.add(payment)
    session.commit()
    logger.error("Payment initiation failed for %s", payment.merchant_transaction_id)


def verify_notification(
    notification: PaymentNotification,
    *,
    x_verify: str | None,
    authorization: str | None,
) -> bool:
    """
    校验回调签名

    未配置密钥时跳过校验；签名不匹配默认只记录日志，
    开启 PHONEPE_ENFORCE_SIGNATURE 后直接拒绝。

    Raises:
        AppError: 开启强制校验且签名不匹配（401）
    """
    if notification.version == NotificationVersion.legacy:
        if not settings.PHONEPE_SALT_KEY:
            logger.warning("PHONEPE_SALT_KEY not configured, skipping X-VERIFY check")
            return True
        ok = verify_callback_signature(
            notification.signed_payload or "",
            x_verify,
            settings.PHONEPE_SALT_KEY,
            settings.PHONEPE_SALT_INDEX,
        )
    else:
        username = settings.PHONEPE_WEBHOOK_USERNAME
        password = settings.PHONEPE_WEBHOOK_PASSWORD
        if not username or not password:
            logger.warning("PhonePe webhook credentials not configured, skipping Authorization check")
            return True
        ok = verify_webhook_authorization(authorization, username, password)

    if not ok:
        logger.warning(
            "PhonePe %s notification signature mismatch for %s",
            notification.version.value,
            notification.merchant_transaction_id,
        )
        if settings.PHONEPE_ENFORCE_SIGNATURE:
            raise AppError(code=401301, message="Invalid signature", status_code=401)
    return ok


def handle_notification(
    *, session: Session, notification: PaymentNotification
) -> tuple[WebhookOutcome, uuid.UUID]:
    """
    处理支付回调

    Returns:
        (处理结果, 订单 ID)，处理结果：
        confirmed: 本次回调完成了 pending -> paid（调用方随后创建物流订单）
        duplicate: 订单已经不是待支付状态，只刷新了支付记录
        failed: 明确失败，支付记录和订单都标记为失败
        declined: 其他非成功结果，只标记支付记录失败
        ignored: 没有结果码的事件（如退款），不做任何修改

    Raises:
        AppError: 找不到支付记录（404），此时不写库
    """
    payment = session.exec(
        select(Payment).where(
            Payment.merchant_transaction_id == notification.merchant_transaction_id
        )
    ).first()
    if not payment:
        logger.error("Payment not found for %s", notification.merchant_transaction_id)
        raise payment_not_found()

    if notification.code is None:
        logger.warning(
            "Unhandled PhonePe event for %s: %s",
            notification.merchant_transaction_id,
            notification.raw.get("event"),
        )
        return WebhookOutcome.ignored, payment.order_id

    try:
        if notification.is_success:
            outcome = _confirm(session, payment, notification)
        else:
            outcome = _fail(session, payment, notification)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "PhonePe %s for order %s: %s",
        notification.code,
        payment.order_id,
        outcome.value,
    )
    return outcome, payment.order_id


def _confirm(
    session: Session, payment: Payment, notification: PaymentNotification
) -> WebhookOutcome:
    now = utc_now()
    payment.status = PaymentStatus.completed
    payment.provider_transaction_id = (
        notification.provider_transaction_id or payment.provider_transaction_id
    )
    payment.paid_at = payment.paid_at or now
    payment.raw_payload = notification.raw
    payment.updated_at = now
    session.add(payment)

    result = session.exec(
        update(Order)
        .where(Order.id == payment.order_id, Order.status == PAYABLE_STATUS)
        .values(status=OrderStatus.paid, updated_at=now)
    )
    if result.rowcount != 1:
        current = session.exec(select(Order.status).where(Order.id == payment.order_id)).first()
        if current in (OrderStatus.failed, OrderStatus.cancelled):
            # 钱已经收到但订单已终止，需要人工对账（退款或重新下单）
            logger.error(
                "Payment %s completed for %s order %s, needs manual reconciliation",
                payment.merchant_transaction_id,
                current,
                payment.order_id,
            )
        else:
            logger.info(
                "Order %s is already %s, skipping side effects", payment.order_id, current
            )
        return WebhookOutcome.duplicate

    order = session.get(Order, payment.order_id)
    items = session.exec(select(OrderItem).where(OrderItem.order_id == payment.order_id)).all()
    crud.decrement_for_order(session=session, order_id=payment.order_id, items=items)
    if order and order.coupon_id:
        crud.redeem_coupon(
            session=session,
            coupon_id=order.coupon_id,
            order_id=order.id,
            user_id=order.user_id,
        )
    return WebhookOutcome.confirmed


def _fail(
    session: Session, payment: Payment, notification: PaymentNotification
) -> WebhookOutcome:
    if payment.status == PaymentStatus.completed:
        # 成功之后到达的失败回调（乱序重发）不回退
        logger.warning(
            "Ignoring %s for completed payment %s",
            notification.code,
            payment.merchant_transaction_id,
        )
        return WebhookOutcome.duplicate

    now = utc_now()
    payment.status = PaymentStatus.failed
    payment.raw_payload = notification.raw
    payment.updated_at = now
    session.add(payment)

    if not notification.is_error:
        return WebhookOutcome.declined

    session.exec(
        update(Order)
        .where(Order.id == payment.order_id, Order.status.in_(FAILABLE_STATUSES))
        .values(status=OrderStatus.failed, updated_at=now)
    )
    return WebhookOutcome.failed
