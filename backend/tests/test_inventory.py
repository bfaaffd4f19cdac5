from __future__ import annotations

import uuid

import pytest
from sqlmodel import func, select

from storefront import crud
from storefront.api.errors import AppError
from storefront.enums import StockLedgerReason
from storefront.models import AuditLog, InventoryLevel, StockLedger

ADJUST = "/api/admin/inventory/adjust"


def _counts(db, variant_id) -> tuple[int, int]:
    ledger = db.exec(
        select(func.count()).select_from(StockLedger).where(StockLedger.variant_id == variant_id)
    ).one()
    audit = db.exec(
        select(func.count()).select_from(AuditLog).where(AuditLog.entity_id == variant_id)
    ).one()
    return ledger, audit


def test_adjust_writes_level_ledger_and_audit(client, db, make_variant, admin, admin_headers):
    variant = make_variant(stock=10)

    r = client.post(
        ADJUST,
        headers=admin_headers,
        json={"variant_id": str(variant.id), "amount": 5, "reason": "restock"},
    )
    assert r.status_code == 200
    assert r.json()["data"]["available"] == 15

    db.expire_all()
    assert db.get(InventoryLevel, variant.id).available == 15
    entry = db.exec(select(StockLedger).where(StockLedger.variant_id == variant.id)).one()
    assert entry.change_amount == 5
    assert entry.reason == StockLedgerReason.restock
    assert entry.reference_type == "manual_adjustment"
    log = db.exec(select(AuditLog).where(AuditLog.entity_id == variant.id)).one()
    assert log.admin_id == admin.id
    assert log.action == "adjust_stock"
    assert log.old_value == {"available": 10}
    assert log.new_value == {"available": 15, "reason": "restock"}


def test_adjust_creates_missing_level(db, make_variant, admin):
    variant = make_variant(stock=None)

    level = crud.adjust_stock(
        session=db,
        admin_id=admin.id,
        variant_id=variant.id,
        amount=7,
        reason=StockLedgerReason.restock,
    )
    assert level.available == 7
    assert _counts(db, variant.id) == (1, 1)


def test_adjust_rejects_negative_result(client, db, make_variant, admin_headers):
    variant = make_variant(stock=3)

    r = client.post(
        ADJUST,
        headers=admin_headers,
        json={"variant_id": str(variant.id), "amount": -4, "reason": "damage"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Insufficient stock"

    db.expire_all()
    assert db.get(InventoryLevel, variant.id).available == 3
    assert _counts(db, variant.id) == (0, 0)


def test_adjust_unknown_variant(client, admin_headers):
    r = client.post(
        ADJUST,
        headers=admin_headers,
        json={"variant_id": str(uuid.uuid4()), "amount": 1, "reason": "restock"},
    )
    assert r.status_code == 404


def test_audit_failure_rolls_back_everything(db, make_variant, admin, monkeypatch):
    variant = make_variant(stock=10)

    def broken_audit(**_kwargs):  # type: ignore[no-untyped-def]
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr("storefront.crud.inventory.record_audit", broken_audit)

    with pytest.raises(RuntimeError):
        crud.adjust_stock(
            session=db,
            admin_id=admin.id,
            variant_id=variant.id,
            amount=5,
            reason=StockLedgerReason.restock,
        )

    db.expire_all()
    assert db.get(InventoryLevel, variant.id).available == 10
    assert _counts(db, variant.id) == (0, 0)


def test_insert_failure_rolls_back_new_level(db, make_variant, admin, monkeypatch):
    variant = make_variant(stock=None)

    def broken_audit(**_kwargs):  # type: ignore[no-untyped-def]
        raise AppError(code=500000, message="boom", status_code=500)

    monkeypatch.setattr("storefront.crud.inventory.record_audit", broken_audit)

    with pytest.raises(AppError):
        crud.adjust_stock(
            session=db,
            admin_id=admin.id,
            variant_id=variant.id,
            amount=5,
            reason=StockLedgerReason.restock,
        )

    db.expire_all()
    assert db.get(InventoryLevel, variant.id) is None


def test_list_inventory(client, make_variant, admin_headers):
    variant = make_variant(stock=4)

    r = client.get("/api/admin/inventory", headers=admin_headers)
    assert r.status_code == 200
    rows = r.json()["data"]
    assert rows[0]["sku"] == variant.sku
    assert rows[0]["available"] == 4


def test_inventory_requires_admin(client, make_user, headers_for):
    r = client.get("/api/admin/inventory")
    assert r.status_code == 401
    assert r.json()["success"] is False

    r = client.get("/api/admin/inventory", headers=headers_for(make_user()))
    assert r.status_code == 403
    assert r.json()["error"] == "Admin access required"
