"""Minimal deterministic OpenAPI document for the storefront API.

Scope (purposefully narrow):
- Staff auth endpoints
- Store status, interaction guard, toggle and hours
- Menu, checkout, staff order board, transitions, tracking and reviews
- Realtime SSE streams

Paths are assembled from a static table so repeated calls produce identical output.
"""
from typing import Any, Dict, List, Optional, Tuple

from .config.pagination import ORDER_BOARD
from .models.order import Order
from .services.order_tracker import ORDER_FSM

__all__ = ["build_openapi_spec"]

# (path, method, summary, required permissions or None for public, tag)
ROUTES: List[Tuple[str, str, str, Optional[List[str]], str]] = [
    ("/auth/login", "post", "Staff login", None, "Auth"),
    ("/auth/me", "get", "Current staff account", [], "Auth"),
    ("/auth/logout", "post", "Revoke current token", [], "Auth"),
    ("/store/status", "get", "Store open/closed status", None, "Store"),
    ("/store/interaction", "get", "Purchase guard (403 when closed)", None, "Store"),
    ("/store/status/toggle", "post", "Open or close the store", ["STORE.MANAGE"], "Store"),
    ("/store/hours", "put", "Set opening hours (HH:MM)", ["STORE.MANAGE"], "Store"),
    ("/menu", "get", "Available products by category", None, "Menu"),
    ("/orders", "post", "Checkout (store must be open)", None, "Orders"),
    ("/orders", "get", "Staff order board", ["ORDERS.READ"], "Orders"),
    ("/orders/stats", "get", "Order counts and revenue", ["STATS.READ"], "Orders"),
    ("/orders/reviews", "get", "Latest reviews", ["REVIEWS.READ"], "Reviews"),
    ("/orders/{order_id}", "get", "Order detail", None, "Orders"),
    ("/orders/{order_id}/tracking", "get", "Customer tracking view", None, "Orders"),
    ("/orders/{order_id}/confirm-delivery", "post", "Customer confirms delivery", None, "Orders"),
    ("/orders/{order_id}/transitions", "get", "Allowed next statuses", ["ORDERS.READ"], "Orders"),
    ("/orders/{order_id}/advance", "post", "Move to the next status", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/confirm", "post", "pending -> confirmed", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/prepare", "post", "confirmed -> preparing", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/ready", "post", "preparing -> ready", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/dispatch", "post", "ready -> delivering", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/complete", "post", "delivering -> completed", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/cancel", "post", "Cancel a non-terminal order", ["ORDERS.MANAGE"], "Orders"),
    ("/orders/{order_id}/payment/confirm", "post", "Mark payment as paid", ["PAYMENTS.CONFIRM"], "Orders"),
    ("/orders/{order_id}/review", "get", "Review of an order", None, "Reviews"),
    ("/orders/{order_id}/review", "post", "Review a delivered order", None, "Reviews"),
    ("/realtime/{collection}", "get", "Server-Sent change events", None, "Realtime"),
]


def _schema(name: str, properties: Dict[str, str]) -> Dict[str, Any]:
    return {
        "type": "object",
        "title": name,
        "properties": {k: {"type": t} for k, t in properties.items()},
    }


def _path_params(path: str) -> List[Dict[str, Any]]:
    params = []
    for part in path.split("/"):
        if part.startswith("{") and part.endswith("}"):
            params.append({"name": part[1:-1], "in": "path", "required": True, "schema": {"type": "string"}})
    return params


def build_openapi_spec() -> Dict[str, Any]:
    schemas = {
        "StoreSettings": _schema("StoreSettings", {
            "id": "string", "is_open": "boolean", "opening_time": "string",
            "closing_time": "string", "last_updated": "string", "updated_by": "string",
        }),
        "Order": _schema("Order", {
            "id": "string", "status": "string", "payment_method": "string", "payment_status": "string",
            "subtotal_cents": "integer", "delivery_fee_cents": "integer", "total_cents": "integer",
            "confirmed_at": "string", "estimated_delivery_time": "string", "delivered_at": "string",
        }),
        "OrderReview": _schema("OrderReview", {
            "id": "string", "order_id": "string", "rating": "integer", "comment": "string",
        }),
        "Pagination": {
            "type": "object",
            "properties": {
                "total": {"type": "integer"},
                "limit": {"type": "integer"},
                "offset": {"type": "integer"},
                "returned": {"type": "integer"},
            },
            "required": ["total", "limit", "offset", "returned"],
        },
        "Error": {
            "type": "object",
            "properties": {
                "error": {
                    "type": "object",
                    "properties": {"status": {"type": "integer"}, "title": {"type": "string"}, "detail": {"type": "string"}},
                }
            },
            "required": ["error"],
        },
    }
    # Lifecycle metadata mirrors the runtime FSM
    schemas["Order"]["x-transitions"] = list(Order.ALL_STATUSES)
    schemas["Order"]["x-transition-graph"] = {s: sorted(ORDER_FSM.graph[s]) for s in Order.ALL_STATUSES}

    paths: Dict[str, Any] = {}
    for path, method, summary, perms, tag in ROUTES:
        op: Dict[str, Any] = {
            "summary": summary,
            "tags": [tag],
            "responses": {"200": {"description": "OK"}, "400": {"$ref": "#/components/responses/BadRequest"}},
        }
        params = _path_params(path)
        if params:
            op["parameters"] = params
            op["responses"]["404"] = {"$ref": "#/components/responses/NotFound"}
        if perms is None:
            op["security"] = []
        elif perms:
            op["x-required-permissions"] = perms
        rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "").replace("-", "_")
        op["operationId"] = f"{method}_{rid}"
        paths.setdefault(path, {})[method] = op

    paths["/orders"]["get"]["parameters"] = [
        {"$ref": "#/components/parameters/LimitParam"},
        {"$ref": "#/components/parameters/OffsetParam"},
        {"name": "status", "in": "query", "schema": {"type": "string", "enum": list(Order.ALL_STATUSES)}},
        {"name": "period", "in": "query", "schema": {"type": "string", "enum": ["today", "week", "month", "year", "all"]}},
        {"name": "sort", "in": "query", "schema": {"type": "string"}, "description": "Comma separated; '-' prefix for descending"},
    ]
    paths["/orders"]["post"]["responses"]["403"] = {"description": "Store closed"}
    paths["/store/interaction"]["get"]["responses"]["403"] = {"description": "Store closed"}
    paths["/realtime/{collection}"]["get"]["responses"]["200"] = {
        "description": "text/event-stream of INSERT/UPDATE change events",
    }

    tags = sorted({r[4] for r in ROUTES})
    return {
        "openapi": "3.0.3",
        "info": {"title": "Pizzeria Storefront API", "version": "0.1.0"},
        "paths": paths,
        "components": {
            "schemas": schemas,
            "responses": {"NotFound": {"description": "Not Found"}, "BadRequest": {"description": "Bad Request"}},
            "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
            "parameters": {
                "LimitParam": {"name": "limit", "in": "query",
                               "schema": {"type": "integer", "default": ORDER_BOARD.default, "maximum": ORDER_BOARD.maximum}},
                "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
            },
        },
        "security": [{"BearerAuth": []}],
        "tags": [{"name": n, "description": f"{n} endpoints"} for n in tags],
    }
