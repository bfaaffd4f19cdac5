from __future__ import annotations

import uuid
from collections.abc import Callable, Generator
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from storefront.api.deps import get_db
from storefront.core.security import create_access_token
from storefront.enums import OrderStatus, UserRole
from storefront.main import app
from storefront.models import (
    Address,
    AuditLog,
    Coupon,
    CouponUsage,
    Fulfillment,
    InventoryLevel,
    Order,
    OrderItem,
    Payment,
    Product,
    ProductVariant,
    StockLedger,
    StoreSettings,
    User,
)

# Children first, so foreign keys never dangle between tests.
_TABLES = (
    AuditLog,
    CouponUsage,
    StockLedger,
    InventoryLevel,
    Payment,
    Fulfillment,
    OrderItem,
    Order,
    Coupon,
    Address,
    ProductVariant,
    Product,
    StoreSettings,
    User,
)


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        session.rollback()
        for model in _TABLES:
            session.exec(delete(model))
        session.commit()


@pytest.fixture(scope="function")
def client(engine) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def make_user(db) -> Callable[..., User]:
    def _make(role: UserRole = UserRole.customer, email: str | None = None) -> User:
        user = User(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            name="Test User",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.admin)


@pytest.fixture
def admin_headers(admin) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def make_variant(db) -> Callable[..., ProductVariant]:
    def _make(
        price: Decimal = Decimal("500.00"),
        stock: int | None = 10,
        sale_price: Decimal | None = None,
    ) -> ProductVariant:
        product = Product(name="Cotton Tee")
        db.add(product)
        db.flush()
        variant = ProductVariant(
            product_id=product.id,
            sku=f"TEE-{uuid.uuid4().hex[:8].upper()}",
            price=price,
            sale_price=sale_price,
            weight=0.25,
        )
        db.add(variant)
        db.flush()
        if stock is not None:
            db.add(InventoryLevel(variant_id=variant.id, available=stock))
        db.commit()
        db.refresh(variant)
        return variant

    return _make


@pytest.fixture
def store(db) -> StoreSettings:
    """Store settings with a pickup pincode, needed for courier quotes."""
    settings_row = StoreSettings(store_name="Test Store", pincode="110001")
    db.add(settings_row)
    db.commit()
    db.refresh(settings_row)
    return settings_row


@pytest.fixture
def make_address(db) -> Callable[..., Address]:
    def _make(user: User | None = None) -> Address:
        address = Address(
            user_id=user.id if user else None,
            full_name="Asha Rao",
            phone="9876543210",
            email="asha@example.com",
            line1="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            pincode="560001",
        )
        db.add(address)
        db.commit()
        db.refresh(address)
        return address

    return _make


@pytest.fixture
def make_order(db, make_variant, make_address) -> Callable[..., tuple[Order, Payment, ProductVariant]]:
    """Pending order with one line item and an initiated payment."""

    def _make(
        quantity: int = 2,
        stock: int | None = 10,
        coupon: Coupon | None = None,
        status: OrderStatus = OrderStatus.pending,
        courier_company_id: str | None = "1",
    ) -> tuple[Order, Payment, ProductVariant]:
        variant = make_variant(stock=stock)
        address = make_address()
        total = variant.price * quantity
        order = Order(
            status=status,
            subtotal=total,
            total_amount=total,
            shipping_address_id=address.id,
            billing_address_id=address.id,
            coupon_id=coupon.id if coupon else None,
            courier_name="Delhivery",
            courier_company_id=courier_company_id,
        )
        db.add(order)
        db.flush()
        db.add(
            OrderItem(
                order_id=order.id,
                product_variant_id=variant.id,
                quantity=quantity,
                price_at_purchase=variant.price,
            )
        )
        payment = Payment(
            order_id=order.id,
            merchant_transaction_id=f"MT{uuid.uuid4().hex[:20].upper()}",
            amount=total,
        )
        db.add(payment)
        db.commit()
        db.refresh(order)
        db.refresh(payment)
        return order, payment, variant

    return _make


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers
