"""商品目录 CRUD 操作"""
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.api.errors import AppError
from storefront.api.schemas import ProductCreateRequest
from storefront.models import InventoryLevel, Product, ProductVariant

from .audit import record_audit


def _sku_conflict() -> AppError:
    return AppError(code=409102, message="SKU already exists", status_code=409)


def create_product(
    *, session: Session, admin_id: uuid.UUID, data: ProductCreateRequest
) -> tuple[Product, list[ProductVariant]]:
    """
    创建商品和全部规格并记录审计日志

    不创建库存记录，上架前通过库存调整入库。

    Raises:
        AppError: SKU 已存在（409）
    """
    skus = [v.sku for v in data.variants]
    if session.exec(select(ProductVariant.id).where(ProductVariant.sku.in_(skus))).first():
        raise _sku_conflict()

    try:
        product = Product(name=data.name)
        session.add(product)
        session.flush()
        variants = [
            ProductVariant(product_id=product.id, **v.model_dump()) for v in data.variants
        ]
        session.add_all(variants)
        session.flush()
        record_audit(
            session=session,
            admin_id=admin_id,
            entity_type="product",
            entity_id=product.id,
            action="create",
            new_value={"name": product.name, "skus": skus},
        )
        session.commit()
    except IntegrityError:
        session.rollback()
        raise _sku_conflict()

    session.refresh(product)
    for variant in variants:
        session.refresh(variant)
    return product, variants


def list_products(
    *, session: Session
) -> list[tuple[Product, list[tuple[ProductVariant, int | None]]]]:
    """
    商品列表（最新创建的在前），每个规格附带当前可用库存

    没有库存记录的规格 available 为 None（下单时不做库存预检）。
    """
    products = session.exec(select(Product).order_by(Product.created_at.desc())).all()
    rows = session.exec(
        select(ProductVariant, InventoryLevel.available)
        .join(InventoryLevel, InventoryLevel.variant_id == ProductVariant.id, isouter=True)
        .order_by(ProductVariant.sku)
    ).all()
    by_product: dict[uuid.UUID, list[tuple[ProductVariant, int | None]]] = {}
    for variant, available in rows:
        by_product.setdefault(variant.product_id, []).append((variant, available))
    return [(product, by_product.get(product.id, [])) for product in products]
