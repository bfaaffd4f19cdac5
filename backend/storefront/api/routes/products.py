"""
商品路由模块

- GET /products: 商品列表（下单时选择规格）
- GET /admin/products: 后台商品列表
- POST /admin/products: 后台创建商品和规格（SKU 重复返回 409）
"""
from __future__ import annotations

from fastapi import APIRouter

from storefront import crud
from storefront.api.deps import CurrentAdmin, SessionDep
from storefront.api.schemas import ApiEnvelope, ProductCreateRequest, ProductData, VariantData
from storefront.models import Product, ProductVariant

router = APIRouter(prefix="/products", tags=["products"])
admin_router = APIRouter(prefix="/admin/products", tags=["admin-products"])


def _product_data(
    product: Product, variants: list[tuple[ProductVariant, int | None]]
) -> ProductData:
    return ProductData(
        id=product.id,
        name=product.name,
        created_at=product.created_at,
        variants=[
            VariantData(
                id=variant.id,
                sku=variant.sku,
                price=variant.price,
                sale_price=variant.sale_price,
                weight=variant.weight,
                available=available,
            )
            for variant, available in variants
        ],
    )


def _catalog(session: SessionDep) -> ApiEnvelope:
    rows = crud.list_products(session=session)
    return ApiEnvelope(data=[_product_data(product, variants) for product, variants in rows])


@router.get("", response_model=ApiEnvelope)
def list_products(session: SessionDep) -> ApiEnvelope:
    return _catalog(session)


@admin_router.get("", response_model=ApiEnvelope)
def admin_list_products(session: SessionDep, _: CurrentAdmin) -> ApiEnvelope:
    return _catalog(session)


@admin_router.post("", response_model=ApiEnvelope)
def create_product(
    session: SessionDep, admin: CurrentAdmin, body: ProductCreateRequest
) -> ApiEnvelope:
    """
    创建商品

    请求路径: POST /api/admin/products

    新规格没有库存记录，需要通过 POST /api/admin/inventory/adjust 入库。
    """
    product, variants = crud.create_product(session=session, admin_id=admin.id, data=body)
    return ApiEnvelope(data=_product_data(product, [(v, None) for v in variants]))
