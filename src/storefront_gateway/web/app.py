from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.staticfiles import StaticFiles

from ..config import GatewayConfig, build_gateway_config
from ..errors import GatewayError, UpstreamFailure, ValidationFailure
from ..gateway.services import GatewayServices, build_services
from ..logging import get_logger


LOG = get_logger("gateway-web")


def _parse_int(value: Any, *, default: int, minimum: int, maximum: int) -> int:
    try:
        parsed = int(value) if value is not None else default
    except (TypeError, ValueError):
        parsed = default
    if parsed < minimum:
        return minimum
    if parsed > maximum:
        return maximum
    return parsed


async def _json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise ValidationFailure("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationFailure("Request body must be a JSON object")
    return body


def _require(body: Dict[str, Any], *fields: str) -> None:
    missing = [f for f in fields if body.get(f) in (None, "")]
    if missing:
        raise ValidationFailure(f"Missing required field(s): {', '.join(missing)}")


def _error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse({"success": False, "error": message, **extra}, status_code=status_code)


async def _gateway_error(_: Request, exc: GatewayError) -> JSONResponse:
    return _error(exc.message, exc.status_code)


def create_app(
    services: Optional[GatewayServices] = None,
    *,
    config: Optional[GatewayConfig] = None,
    static_dir: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create the Starlette app exposing the gateway JSON API.

    `services` may be injected (tests); otherwise they are built from
    `config`. With `static_dir`, a static frontend is served under "/".
    """
    svc = services or build_services(config or build_gateway_config())

    async def health(_: Request) -> PlainTextResponse:
        return PlainTextResponse("ok")

    async def connection_status(_: Request) -> JSONResponse:
        count = len(svc.registry)
        return JSONResponse({"is_connected": count > 0, "total_stores": count})

    async def connect(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _require(body, "url", "credential")
        store_id = await run_in_threadpool(
            svc.registry.connect,
            body.get("name"),
            body["url"],
            body["credential"],
            owner=body.get("owner"),
        )
        return JSONResponse({"success": True, "store_id": store_id, "stores": svc.registry.list()})

    async def stores(_: Request) -> JSONResponse:
        return JSONResponse({"stores": svc.registry.list()})

    async def remove_store(request: Request) -> JSONResponse:
        svc.registry.remove(request.path_params["store_id"])
        return JSONResponse({"success": True, "stores": svc.registry.list()})

    async def disconnect(_: Request) -> JSONResponse:
        count = svc.registry.disconnect_all()
        return JSONResponse({"success": True, "message": f"Disconnected {count} store(s)"})

    async def test_store(_: Request) -> JSONResponse:
        svc.registry.require_any()
        try:
            count = await run_in_threadpool(svc.registry.test_first)
        except UpstreamFailure as exc:
            return _error(f"Connection test failed: {exc.message}", 400)
        return JSONResponse({"success": True, "message": "Connection successful", "product_count": count})

    async def store_orders(request: Request) -> JSONResponse:
        qp = request.query_params
        limit = _parse_int(qp.get("limit"), default=10, minimum=1, maximum=250)
        status = qp.get("status") or None
        orders = await run_in_threadpool(
            svc.orders.list_store_orders, request.path_params["store_id"], limit, status
        )
        return JSONResponse({"count": len(orders), "orders": orders})

    async def product_details(request: Request) -> JSONResponse:
        details = await svc.search.product_details(
            request.path_params["store_id"], request.path_params["product_id"]
        )
        return JSONResponse({"success": True, **details})

    async def search(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _require(body, "query")
        query = str(body["query"])
        store_id = body.get("store_id")
        if store_id:
            store = svc.registry.get(store_id)
            products = await svc.search.search(query, store_id=store_id)
            return JSONResponse({
                "success": True,
                "store": store.display_name,
                "total_stores": 1,
                "total_products": len(products),
                "products": [p.to_dict() for p in products],
            })

        svc.registry.require_any()
        products = await svc.search.search(query)
        stats = svc.search.store_stats(products)
        ai_response = await svc.dispatcher.respond(query, products, stats)
        return JSONResponse({
            "success": True,
            **stats,
            "products": [p.to_dict() for p in products],
            "ai_response": ai_response,
        })

    async def compare(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _require(body, "search_term")
        svc.registry.require_any()
        comparison = await svc.search.compare(str(body["search_term"]))
        return JSONResponse({"success": True, "search_term": body["search_term"], "comparison": comparison})

    async def deals(request: Request) -> JSONResponse:
        body = await _json_body(request)
        limit = _parse_int(body.get("limit"), default=10, minimum=1, maximum=100)
        svc.registry.require_any()
        ranked = await svc.search.best_deals(limit)
        return JSONResponse({"count": len(ranked), "deals": [p.to_dict() for p in ranked]})

    async def vendor(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _require(body, "vendor")
        limit = _parse_int(body.get("limit"), default=20, minimum=1, maximum=250)
        svc.registry.require_any()
        products = await svc.search.search_by_vendor(str(body["vendor"]), limit)
        return JSONResponse({
            "vendor": body["vendor"],
            "count": len(products),
            "products": [p.to_dict() for p in products],
        })

    async def create_order(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _require(body, "product_id", "store_id")
        try:
            record = await run_in_threadpool(
                svc.orders.create_order,
                body["store_id"],
                body["product_id"],
                body.get("quantity", 1),
                body.get("customer_info"),
            )
        except UpstreamFailure as exc:
            LOG.error(f"Order creation error: {exc.message}")
            return _error(f"Order creation failed: {exc.message}", 400)
        return JSONResponse({
            "success": True,
            "order_id": record.upstream_order_id,
            "order_number": record.upstream_order_number,
            "tracking_id": record.tracking_id,
            "total": record.total,
            "currency": record.currency,
        })

    async def order_status(request: Request) -> JSONResponse:
        record = svc.orders.get(request.path_params["tracking_id"])
        return JSONResponse({"success": True, "order": record.to_dict()})

    async def pay_order(request: Request) -> JSONResponse:
        body = await _json_body(request)
        record = svc.orders.mark_paid(request.path_params["tracking_id"], body.get("method"))
        return JSONResponse({
            "success": True,
            "message": "Payment completed successfully!",
            "order": record.to_dict(),
        })

    async def ai_config(request: Request) -> JSONResponse:
        if request.method == "GET":
            return JSONResponse(svc.ai_settings.masked())
        body = await _json_body(request)
        keys = body.get("keys") if isinstance(body.get("keys"), dict) else None
        svc.ai_settings.update(provider=body.get("provider"), model=body.get("model"), credentials=keys)
        return JSONResponse({
            "success": True,
            "message": "AI configuration saved successfully",
            "config": svc.ai_settings.masked(),
        })

    async def ai_status(_: Request) -> JSONResponse:
        return JSONResponse(svc.ai_settings.status())

    async def ai_test(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if not body.get("api_key"):
            return _error("API key is required", 400)
        if not body.get("provider") or not body.get("model"):
            return _error("Provider and model are required", 400)
        result = await svc.dispatcher.test_connection(body["provider"], body["model"], body["api_key"])
        if result.success:
            return JSONResponse({
                "success": True,
                "message": result.message,
                "model": body["model"],
                "response": result.response,
            })
        return _error(
            result.error or f"Connection test for {body['provider']} failed. Check the key and network.",
            400,
            details={"provider": body["provider"], "model": body["model"]},
        )

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/config", connection_status, methods=["GET"]),
        Route("/connect", connect, methods=["POST"]),
        Route("/disconnect", disconnect, methods=["POST"]),
        Route("/stores", stores, methods=["GET"]),
        Route("/stores/test", test_store, methods=["POST"]),
        Route("/stores/{store_id}", remove_store, methods=["DELETE"]),
        Route("/stores/{store_id}/orders", store_orders, methods=["GET"]),
        Route("/stores/{store_id}/products/{product_id}", product_details, methods=["GET"]),
        Route("/search", search, methods=["POST"]),
        Route("/compare", compare, methods=["POST"]),
        Route("/deals", deals, methods=["POST"]),
        Route("/vendor", vendor, methods=["POST"]),
        Route("/orders", create_order, methods=["POST"]),
        Route("/orders/{tracking_id}", order_status, methods=["GET"]),
        Route("/orders/{tracking_id}/pay", pay_order, methods=["POST"]),
        Route("/ai/config", ai_config, methods=["GET", "POST"]),
        Route("/ai/status", ai_status, methods=["GET"]),
        Route("/ai/test", ai_test, methods=["POST"]),
    ]

    app = Starlette(debug=False, routes=routes, exception_handlers={GatewayError: _gateway_error})
    app.state.services = svc

    origins = allow_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if static_dir:
        resolved = os.path.abspath(static_dir)
        if os.path.isdir(resolved):
            app.mount("/", StaticFiles(directory=resolved, html=True), name="frontend")
            LOG.info("Serving static frontend from %s", resolved)
        else:
            LOG.warning("Static directory %s not found; API will run without static assets.", resolved)

    return app


__all__ = ["create_app"]
