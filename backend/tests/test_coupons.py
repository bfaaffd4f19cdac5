from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlmodel import select

from storefront import crud
from storefront.api.errors import AppError
from storefront.crud.coupons import compute_discount, format_inr
from storefront.enums import DiscountType
from storefront.models import AuditLog, Coupon, utc_now


def _coupon(db, **kwargs) -> Coupon:
    values = {
        "code": "SAVE10",
        "discount_type": DiscountType.percentage,
        "discount_value": Decimal("10"),
    }
    values.update(kwargs)
    coupon = Coupon(**values)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def test_percentage_coupon_is_case_insensitive(db):
    _coupon(db)
    coupon, discount = crud.validate_coupon(session=db, code="save10", amount=Decimal("1000"))
    assert coupon.code == "SAVE10"
    assert discount.discount_amount == Decimal("100.00")
    assert discount.discount_type == DiscountType.percentage


def test_usage_limit_reached(db):
    _coupon(db, max_usage=5, used_count=5)
    with pytest.raises(AppError) as exc:
        crud.validate_coupon(session=db, code="SAVE10", amount=Decimal("1000"))
    assert exc.value.message == "This promo code has reached its usage limit"
    assert exc.value.status_code == 400


def test_not_started_and_expired(db):
    now = utc_now()
    _coupon(db, code="LATER", starts_at=now + timedelta(days=1))
    _coupon(db, code="GONE", starts_at=now - timedelta(days=10), expires_at=now - timedelta(days=1))

    for code in ("LATER", "GONE", "NOPE"):
        with pytest.raises(AppError) as exc:
            crud.validate_coupon(session=db, code=code, amount=Decimal("1000"))
        assert exc.value.message == "Invalid or expired promo code"


def test_inside_window_accepted(db):
    now = utc_now()
    _coupon(db, starts_at=now - timedelta(days=1), expires_at=now + timedelta(days=1), max_usage=5, used_count=4)
    _, discount = crud.validate_coupon(session=db, code="SAVE10", amount=Decimal("250"))
    assert discount.discount_amount == Decimal("25.00")


def test_minimum_order_amount(db):
    _coupon(db, min_order_amount=Decimal("500"))
    with pytest.raises(AppError) as exc:
        crud.validate_coupon(session=db, code="SAVE10", amount=Decimal("499.99"))
    assert exc.value.message == "Minimum order amount for this code is ₹500.00"

    _, discount = crud.validate_coupon(session=db, code="SAVE10", amount=Decimal("500"))
    assert discount.discount_amount == Decimal("50.00")


def test_fixed_discount_capped_at_amount():
    coupon = Coupon(code="FLAT", discount_type=DiscountType.fixed, discount_value=Decimal("300"))
    assert compute_discount(coupon, Decimal("1000")) == Decimal("300.00")
    assert compute_discount(coupon, Decimal("120")) == Decimal("120.00")


def test_format_inr_grouping():
    assert format_inr(Decimal("500")) == "₹500.00"
    assert format_inr(Decimal("1500")) == "₹1,500.00"
    assert format_inr(Decimal("123456.5")) == "₹1,23,456.50"
    assert format_inr(Decimal("10000000")) == "₹1,00,00,000.00"


def test_validate_endpoint(client, db):
    _coupon(db, max_usage=5, used_count=5)

    r = client.post("/api/checkout/coupon", json={"code": "SAVE10", "amount": "1000"})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["error"] == "This promo code has reached its usage limit"

    _coupon(db, code="WELCOME", discount_type=DiscountType.fixed, discount_value=Decimal("75"))
    r = client.post("/api/checkout/coupon", json={"code": "welcome", "amount": "1000"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert Decimal(body["data"]["discount_amount"]) == Decimal("75.00")


def test_admin_create_list_delete(client, db, admin_headers):
    r = client.post(
        "/api/admin/coupons",
        headers=admin_headers,
        json={"code": " diwali20 ", "discount_type": "percentage", "discount_value": "20"},
    )
    assert r.status_code == 200
    coupon_id = r.json()["data"]["id"]
    assert r.json()["data"]["code"] == "DIWALI20"

    r = client.post(
        "/api/admin/coupons",
        headers=admin_headers,
        json={"code": "DIWALI20", "discount_type": "fixed", "discount_value": "100"},
    )
    assert r.status_code == 409
    assert r.json()["error"] == "Coupon code already exists."

    r = client.get("/api/admin/coupons", headers=admin_headers)
    assert [c["code"] for c in r.json()["data"]] == ["DIWALI20"]

    r = client.delete(f"/api/admin/coupons/{coupon_id}", headers=admin_headers)
    assert r.status_code == 200
    r = client.delete(f"/api/admin/coupons/{coupon_id}", headers=admin_headers)
    assert r.status_code == 404

    actions = [log.action for log in db.exec(select(AuditLog).where(AuditLog.entity_type == "coupon")).all()]
    assert sorted(actions) == ["create", "delete"]


def test_admin_create_rejects_invalid_percentage(client, admin_headers):
    r = client.post(
        "/api/admin/coupons",
        headers=admin_headers,
        json={"code": "HUGE", "discount_type": "percentage", "discount_value": "150"},
    )
    assert r.status_code == 422
    assert r.json()["code"] == 422000
