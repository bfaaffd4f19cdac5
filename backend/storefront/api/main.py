"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中，
由 storefront/main.py 以 settings.API_PREFIX 为前缀注册到主应用。

路由模块说明：
- webhooks: 支付回调、支付完成跳转
- addresses: 我的地址
- products: 商品列表；后台创建商品
- checkout: 优惠码校验、快递查询、发起支付
- orders: 我的订单；后台订单管理
- inventory: 后台库存调整
- coupons: 后台优惠券管理
- store: 后台店铺设置
- audit: 后台审计日志
- utils: 健康检查
"""
from fastapi import APIRouter

from storefront.api.routes import (
    addresses,
    audit,
    checkout,
    coupons,
    inventory,
    orders,
    products,
    store,
    utils,
    webhooks,
)

api_router = APIRouter()

api_router.include_router(webhooks.router)  # /webhooks/*
api_router.include_router(addresses.router)  # /addresses/*
api_router.include_router(products.router)  # /products
api_router.include_router(products.admin_router)  # /admin/products/*
api_router.include_router(checkout.router)  # /checkout/*
api_router.include_router(orders.router)  # /orders/*
api_router.include_router(orders.admin_router)  # /admin/orders/*
api_router.include_router(inventory.router)  # /admin/inventory/*
api_router.include_router(coupons.router)  # /admin/coupons/*
api_router.include_router(store.router)  # /admin/settings
api_router.include_router(audit.router)  # /admin/audit-logs/*
api_router.include_router(utils.router)  # /utils/*
