from __future__ import annotations

import base64
import hashlib
import json
import logging
from decimal import Decimal

import pytest
from sqlmodel import Session, func, select

from storefront.api.errors import AppError
from storefront.core.config import settings
from storefront.enums import (
    DiscountType,
    OrderStatus,
    PaymentStatus,
    StockLedgerReason,
    WebhookOutcome,
)
from storefront.integrations import shiprocket
from storefront.integrations.phonepe import parse_notification
from storefront.models import (
    Coupon,
    CouponUsage,
    Fulfillment,
    InventoryLevel,
    Order,
    Payment,
    StockLedger,
)
from storefront.services import payments

WEBHOOK = "/api/webhooks/phonepe"


def _legacy_body(merchant_txn: str, code: str = "PAYMENT_SUCCESS", txn: str = "T2401") -> dict:
    decoded = {
        "success": code == "PAYMENT_SUCCESS",
        "code": code,
        "data": {"merchantTransactionId": merchant_txn, "transactionId": txn, "amount": 100000},
    }
    return {"response": base64.b64encode(json.dumps(decoded).encode()).decode()}


def _inline_body(merchant_txn: str, code: str = "PAYMENT_SUCCESS") -> dict:
    return {"code": code, "data": {"merchantTransactionId": merchant_txn, "transactionId": "T1"}}


def _v2_body(merchant_order_id: str, event: str, state: str) -> dict:
    return {
        "event": event,
        "payload": {
            "orderId": "OMO123",
            "merchantId": "M1",
            "merchantOrderId": merchant_order_id,
            "state": state,
            "amount": 100000,
            "paymentDetails": [{"transactionId": "OM99", "state": state}],
        },
    }


def _ledger_count(db, variant_id) -> int:
    return db.exec(
        select(func.count()).select_from(StockLedger).where(StockLedger.variant_id == variant_id)
    ).one()


def test_success_webhook_confirms_order_and_decrements_stock(client, db, make_order):
    order, payment, variant = make_order(quantity=2, stock=10)

    r = client.post(WEBHOOK, json=_legacy_body(payment.merchant_transaction_id))
    assert r.status_code == 200
    assert r.json() == {"success": True}

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid
    paid = db.get(Payment, payment.id)
    assert paid.status == PaymentStatus.completed
    assert paid.provider_transaction_id == "T2401"
    assert paid.paid_at is not None
    assert "decoded" in paid.raw_payload
    assert db.get(InventoryLevel, variant.id).available == 8

    ledger = db.exec(select(StockLedger).where(StockLedger.variant_id == variant.id)).all()
    assert len(ledger) == 1
    assert ledger[0].change_amount == -2
    assert ledger[0].reason == StockLedgerReason.sale
    assert ledger[0].reference_id == order.id


def test_redelivered_success_webhook_decrements_once(client, db, make_order):
    order, payment, variant = make_order(quantity=2, stock=10)
    body = _legacy_body(payment.merchant_transaction_id)

    for _ in range(3):
        r = client.post(WEBHOOK, json=body)
        assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid
    assert db.get(InventoryLevel, variant.id).available == 8
    assert _ledger_count(db, variant.id) == 1


def test_interleaved_duplicate_deliveries_decrement_once(engine, db, make_order):
    order, payment, variant = make_order(quantity=3, stock=10)
    notification = parse_notification(_inline_body(payment.merchant_transaction_id))

    with Session(engine) as first, Session(engine) as second:
        # The first delivery has already read the order as pending.
        assert first.get(Order, order.id).status == OrderStatus.pending
        first.exec(
            select(Payment).where(
                Payment.merchant_transaction_id == payment.merchant_transaction_id
            )
        ).one()

        outcome, _ = payments.handle_notification(session=second, notification=notification)
        assert outcome == WebhookOutcome.confirmed

        outcome, _ = payments.handle_notification(session=first, notification=notification)
        assert outcome == WebhookOutcome.duplicate

    db.expire_all()
    assert db.get(InventoryLevel, variant.id).available == 7
    assert _ledger_count(db, variant.id) == 1


def test_unknown_transaction_returns_404_without_writes(client, db, make_order):
    order, payment, variant = make_order()

    r = client.post(WEBHOOK, json=_legacy_body("MTXXX"))
    assert r.status_code == 404
    assert r.json() == {"error": "Payment Not Found"}

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.pending
    assert db.get(Payment, payment.id).status == PaymentStatus.initiated
    assert db.get(InventoryLevel, variant.id).available == 10
    assert _ledger_count(db, variant.id) == 0


def test_malformed_envelope_is_rejected(client):
    r = client.post(WEBHOOK, json={"response": "not base64!!"})
    assert r.status_code == 400
    assert "error" in r.json()

    r = client.post(WEBHOOK, json={"code": "PAYMENT_SUCCESS", "data": {}})
    assert r.status_code == 400


@pytest.mark.parametrize("body", [[], ["MT1"], "PAYMENT_SUCCESS", 42])
def test_non_object_body_is_rejected(client, body):
    r = client.post(WEBHOOK, json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid webhook payload"}


def test_payment_error_marks_payment_and_order_failed(client, db, make_order):
    order, payment, variant = make_order()

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id, "PAYMENT_ERROR"))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Payment, payment.id).status == PaymentStatus.failed
    assert db.get(Order, order.id).status == OrderStatus.failed
    assert db.get(InventoryLevel, variant.id).available == 10


def test_pending_code_marks_only_payment_failed(client, db, make_order):
    order, payment, _ = make_order()

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id, "PAYMENT_PENDING"))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Payment, payment.id).status == PaymentStatus.failed
    assert db.get(Order, order.id).status == OrderStatus.pending


def test_late_failure_does_not_undo_completed_payment(client, db, make_order):
    order, payment, _ = make_order()
    client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id, "PAYMENT_ERROR"))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Payment, payment.id).status == PaymentStatus.completed
    assert db.get(Order, order.id).status == OrderStatus.paid


def test_success_after_failure_does_not_revive_order(client, db, make_order, caplog):
    order, payment, variant = make_order()
    client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id, "TIMED_OUT"))

    with caplog.at_level(logging.ERROR, logger="storefront.services.payments"):
        r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))
    assert r.status_code == 200
    errors = [rec for rec in caplog.records if rec.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "needs manual reconciliation" in errors[0].getMessage()

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.failed
    assert db.get(InventoryLevel, variant.id).available == 10


def test_v2_completed_event(client, db, make_order):
    order, payment, variant = make_order(quantity=1)

    r = client.post(
        WEBHOOK,
        json=_v2_body(payment.merchant_transaction_id, "checkout.order.completed", "COMPLETED"),
    )
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid
    assert db.get(Payment, payment.id).provider_transaction_id == "OM99"
    assert db.get(InventoryLevel, variant.id).available == 9


def test_v2_failed_event(client, db, make_order):
    order, payment, _ = make_order()

    r = client.post(
        WEBHOOK, json=_v2_body(payment.merchant_transaction_id, "checkout.order.failed", "FAILED")
    )
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.failed


def test_v2_unrelated_event_is_ignored(client, db, make_order):
    order, payment, _ = make_order()

    r = client.post(
        WEBHOOK, json=_v2_body(payment.merchant_transaction_id, "pg.refund.completed", "PENDING")
    )
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.pending
    assert db.get(Payment, payment.id).status == PaymentStatus.initiated


def test_missing_inventory_row_is_skipped(client, db, make_order):
    order, payment, variant = make_order(stock=None)

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid
    assert db.get(InventoryLevel, variant.id) is None
    assert _ledger_count(db, variant.id) == 0


def test_oversold_stock_goes_negative_but_confirms(client, db, make_order):
    order, payment, variant = make_order(quantity=3, stock=1)

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid
    assert db.get(InventoryLevel, variant.id).available == -2


def test_coupon_redeemed_once_on_paid_transition(client, db, make_order):
    coupon = Coupon(code="SAVE10", discount_type=DiscountType.percentage, discount_value=Decimal("10"))
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    order, payment, _ = make_order(coupon=coupon)

    body = _inline_body(payment.merchant_transaction_id)
    client.post(WEBHOOK, json=body)
    client.post(WEBHOOK, json=body)

    db.expire_all()
    assert db.get(Coupon, coupon.id).used_count == 1
    usages = db.exec(select(CouponUsage).where(CouponUsage.order_id == order.id)).all()
    assert len(usages) == 1


def test_exhausted_coupon_does_not_block_confirmation(client, db, make_order):
    coupon = Coupon(
        code="ONCE",
        discount_type=DiscountType.fixed,
        discount_value=Decimal("50"),
        max_usage=1,
        used_count=1,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    order, payment, _ = make_order(coupon=coupon)

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid
    assert db.get(Coupon, coupon.id).used_count == 1


def test_shipment_created_after_confirmation(client, db, make_order):
    order, payment, _ = make_order()

    client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))

    db.expire_all()
    shipped = db.get(Order, order.id)
    assert shipped.status == OrderStatus.paid
    assert shipped.shiprocket_order_id == f"SR{order.id}"[:32]
    assert shipped.awb_code
    fulfillments = db.exec(select(Fulfillment).where(Fulfillment.order_id == order.id)).all()
    assert len(fulfillments) == 1
    assert fulfillments[0].tracking_number == shipped.awb_code


def test_shipment_failure_is_swallowed(client, db, make_order, monkeypatch):
    order, payment, variant = make_order()

    class _Broken(shiprocket.ShiprocketClient):
        def create_order(self, payload):  # type: ignore[no-untyped-def]
            raise AppError(code=502403, message="Shiprocket down", status_code=502)

    monkeypatch.setattr("storefront.api.routes.webhooks.get_shiprocket_client", _Broken)

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))
    assert r.status_code == 200
    assert r.json() == {"success": True}

    db.expire_all()
    confirmed = db.get(Order, order.id)
    assert confirmed.status == OrderStatus.paid
    assert confirmed.shiprocket_order_id is None
    assert db.get(InventoryLevel, variant.id).available == 8


def test_unhandled_error_returns_500(client, make_order, monkeypatch):
    _, payment, _ = make_order()

    def boom(**_kwargs):  # type: ignore[no-untyped-def]
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(payments, "handle_notification", boom)

    r = client.post(WEBHOOK, json=_inline_body(payment.merchant_transaction_id))
    assert r.status_code == 500
    assert r.json() == {"error": "database unavailable"}


def test_legacy_signature_mismatch_is_logged_by_default(client, db, make_order, monkeypatch):
    monkeypatch.setattr(settings, "PHONEPE_SALT_KEY", "salt-123")
    order, payment, _ = make_order()

    r = client.post(
        WEBHOOK,
        json=_legacy_body(payment.merchant_transaction_id),
        headers={"X-VERIFY": "bogus###1"},
    )
    assert r.status_code == 200

    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid


def test_legacy_signature_enforced(client, db, make_order, monkeypatch):
    monkeypatch.setattr(settings, "PHONEPE_SALT_KEY", "salt-123")
    monkeypatch.setattr(settings, "PHONEPE_ENFORCE_SIGNATURE", True)
    order, payment, _ = make_order()
    body = _legacy_body(payment.merchant_transaction_id)

    r = client.post(WEBHOOK, json=body, headers={"X-VERIFY": "bogus###1"})
    assert r.status_code == 401
    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.pending

    digest = hashlib.sha256(f"{body['response']}salt-123".encode()).hexdigest()
    r = client.post(WEBHOOK, json=body, headers={"X-VERIFY": f"{digest}###1"})
    assert r.status_code == 200
    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid


def test_v2_authorization_enforced(client, db, make_order, monkeypatch):
    monkeypatch.setattr(settings, "PHONEPE_WEBHOOK_USERNAME", "hook")
    monkeypatch.setattr(settings, "PHONEPE_WEBHOOK_PASSWORD", "secret")
    monkeypatch.setattr(settings, "PHONEPE_ENFORCE_SIGNATURE", True)
    order, payment, _ = make_order()
    body = _v2_body(payment.merchant_transaction_id, "checkout.order.completed", "COMPLETED")

    r = client.post(WEBHOOK, json=body, headers={"Authorization": "nope"})
    assert r.status_code == 401

    expected = hashlib.sha256(b"hook:secret").hexdigest()
    r = client.post(WEBHOOK, json=body, headers={"Authorization": f"SHA256 {expected.upper()}"})
    assert r.status_code == 200
    db.expire_all()
    assert db.get(Order, order.id).status == OrderStatus.paid


@pytest.mark.parametrize(
    ("query", "form", "location"),
    [
        ("?orderId=abc", None, "/checkout/success?orderId=abc"),
        ("?orderId=abc&code=PAYMENT_SUCCESS", None, "/checkout/success?orderId=abc"),
        ("?orderId=abc", {"code": "PAYMENT_ERROR"}, "/checkout?error=PaymentFailed"),
        ("", {"code": "PAYMENT_SUCCESS"}, "/checkout?error=SomethingWentWrong"),
    ],
)
def test_redirect(client, query, form, location):
    url = f"{WEBHOOK}/redirect{query}"
    if form is None:
        r = client.get(url, follow_redirects=False)
    else:
        r = client.post(url, data=form, follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == f"{settings.APP_URL.rstrip('/')}{location}"
