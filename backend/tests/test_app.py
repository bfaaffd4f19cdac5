from __future__ import annotations

import asyncio
import time
import uuid
from pathlib import Path

import jwt
import pytest
from alembic import command
from alembic.config import Config
from fastapi import HTTPException
from sqlalchemy import create_engine, inspect
from sqlmodel import Session, SQLModel, select

from storefront.api import deps
from storefront.core import db as core_db
from storefront.core.config import Settings, parse_cors, settings
from storefront.enums import UserRole
from storefront.models import StoreSettings, User

BACKEND_DIR = Path(__file__).resolve().parents[1]


def test_health_check(client):
    r = client.get("/api/utils/health-check/")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": {"database": "ok"}, "error": None}


def test_validation_error_envelope(client):
    r = client.post("/api/checkout/coupon", json={"code": "", "amount": "-1"})
    assert r.status_code == 422
    body = r.json()
    assert body["success"] is False
    assert body["code"] == 422000
    assert body["data"]["errors"]


def test_http_exception_handler_dict_branch():
    from storefront import main as app_main

    exc = HTTPException(status_code=418, detail={"code": 418001, "message": "teapot"})
    resp = asyncio.run(app_main.http_error_handler(None, exc))  # type: ignore[arg-type]
    assert resp.status_code == 418
    assert b'"code":418001' in resp.body


def test_invalid_tokens(client):
    r = client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    token = jwt.encode({"sub": "abc", "exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get("/api/orders", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    token = jwt.encode({"exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get("/api/orders", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256"
    )
    r = client.get("/api/orders", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["error"] == "User not found"


def test_get_db_uses_engine(engine, monkeypatch):
    monkeypatch.setattr(deps, "engine", engine)
    gen = deps.get_db()
    session = next(gen)
    session.exec(select(1))
    gen.close()


def test_settings_validation_paths():
    assert parse_cors("http://a.test, http://b.test") == ["http://a.test", "http://b.test"]
    assert parse_cors(["a"]) == ["a"]
    with pytest.raises(ValueError):
        parse_cors(123)

    with pytest.raises(ValueError):
        Settings(ENVIRONMENT="production", SECRET_KEY="changethis")
    with pytest.raises(ValueError):
        Settings(ENVIRONMENT="staging", PHONEPE_SALT_KEY="changethis")

    local = Settings(ENVIRONMENT="local", POSTGRES_DB="shop")
    assert str(local.SQLALCHEMY_DATABASE_URI).startswith("postgresql+psycopg://")


def test_init_db_seeds_store_and_admin(db, monkeypatch):
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "owner@example.com")
    core_db.init_db(db)
    core_db.init_db(db)

    assert len(db.exec(select(StoreSettings)).all()) == 1
    admin = db.exec(select(User).where(User.email == "owner@example.com")).one()
    assert admin.role == UserRole.admin


def test_init_db_promotes_existing_user(db, make_user, monkeypatch):
    user = make_user(email="staff@example.com")
    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "staff@example.com")
    core_db.init_db(db)
    db.refresh(user)
    assert user.role == UserRole.admin


def test_prestart_and_seed_scripts(engine, monkeypatch):
    from storefront import backend_pre_start, initial_data

    monkeypatch.setattr(backend_pre_start, "engine", engine)
    monkeypatch.setattr(initial_data, "engine", engine)

    backend_pre_start.main()
    initial_data.main()

    with Session(engine) as session:
        assert session.exec(select(StoreSettings)).first() is not None


def test_migration_matches_models(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrate.db'}"
    config = Config()
    config.set_main_option("script_location", str(BACKEND_DIR / "storefront" / "alembic"))
    config.set_main_option("sqlalchemy.url", url)

    command.upgrade(config, "head")

    migrated = inspect(create_engine(url))
    tables = set(migrated.get_table_names()) - {"alembic_version"}
    assert tables == set(SQLModel.metadata.tables)
    for name, table in SQLModel.metadata.tables.items():
        columns = {c["name"] for c in migrated.get_columns(name)}
        assert columns == set(table.columns.keys()), name

    command.downgrade(config, "base")
    assert set(inspect(create_engine(url)).get_table_names()) == {"alembic_version"}
