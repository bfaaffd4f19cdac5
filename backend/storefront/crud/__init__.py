"""CRUD 操作模块"""
from .addresses import (
    create_address,
    delete_address,
    list_addresses,
    set_default_address,
)
from .audit import get_entity_history, list_audit_logs, record_audit
from .catalog import create_product, list_products
from .coupons import (
    create_coupon,
    delete_coupon,
    list_coupons,
    redeem_coupon,
    validate_coupon,
)
from .inventory import adjust_stock, decrement_for_order, get_available, list_inventory
from .orders import (
    get_order,
    get_order_children,
    list_orders,
    update_order_status,
    upsert_fulfillment,
)
from .store import get_store_settings, update_store_settings

__all__ = [
    "record_audit",
    "list_audit_logs",
    "get_entity_history",
    "validate_coupon",
    "redeem_coupon",
    "list_coupons",
    "create_coupon",
    "delete_coupon",
    "adjust_stock",
    "decrement_for_order",
    "get_available",
    "list_inventory",
    "get_order",
    "get_order_children",
    "list_orders",
    "update_order_status",
    "upsert_fulfillment",
    "list_addresses",
    "create_address",
    "delete_address",
    "set_default_address",
    "create_product",
    "list_products",
    "get_store_settings",
    "update_store_settings",
]
