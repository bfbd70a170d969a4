from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Sequence

from ..config import build_gateway_config
from ..gateway.services import build_services
from ..logging import get_logger

LOG = get_logger("cli-main")


def _add_store_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--store-url", help="Override store URL (defaults to SHOPIFY_STORE_URL in env/.env)")
    p.add_argument("--token", help="Store access token (overrides SHOPIFY_ACCESS_TOKEN in env/.env)")


def _handle_serve(ns: argparse.Namespace) -> int:
    from ..web import create_app
    import uvicorn

    if ns.reload:
        # The reloader imports the app factory itself, so overrides travel via the environment.
        if ns.store_url:
            os.environ["SHOPIFY_STORE_URL"] = ns.store_url
        if ns.token:
            os.environ["SHOPIFY_ACCESS_TOKEN"] = ns.token
        port = ns.port or build_gateway_config(None, script_dir=os.getcwd()).port
        LOG.info(f"Gateway listening on http://{ns.host}:{port} (auto-reload)")
        uvicorn.run(
            "storefront_gateway.web.app:create_app",
            factory=True,
            reload=True,
            host=ns.host,
            port=port,
            log_level=ns.log_level,
        )
        return 0

    config = build_gateway_config(ns, script_dir=os.getcwd())
    app = create_app(config=config, static_dir=ns.static_dir, allow_origins=ns.allow_origins)
    LOG.info(f"Gateway listening on http://{ns.host}:{config.port}")
    uvicorn.run(app, host=ns.host, port=config.port, log_level=ns.log_level)
    return 0


def _handle_search(ns: argparse.Namespace) -> int:
    config = build_gateway_config(ns, script_dir=os.getcwd())
    if not config.has_default_store:
        LOG.error("No store configured. Provide --store-url/--token or set them in env/.env.")
        return 2
    services = build_services(config)
    products = asyncio.run(services.search.search(ns.query))
    out = [p.to_dict() for p in products[: ns.limit]]
    print(json.dumps({"query": ns.query, "count": len(out), "products": out}, ensure_ascii=False, indent=2))
    return 0


def _handle_ai_test(ns: argparse.Namespace) -> int:
    config = build_gateway_config(None, script_dir=os.getcwd())
    services = build_services(config, connect_default_store=False)
    credential = ns.api_key or config.ai_credentials.get(ns.provider)
    if not credential:
        LOG.error(f"No credential for provider '{ns.provider}'. Pass --api-key or set it in env/.env.")
        return 2
    result = asyncio.run(services.dispatcher.test_connection(ns.provider, ns.model, credential))
    if result.success:
        print(result.message)
        return 0
    print(result.error, file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.info(f"CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Multi-store product search and shopping assistant gateway.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the gateway HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, help="Listen port (defaults to PORT in env/.env, else 3000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (ignores --static-dir/--allow-origin)")
    serve.add_argument("--log-level", default="info")
    serve.add_argument("--static-dir", help="Serve a static frontend from this directory under '/'")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    _add_store_args(serve)
    serve.set_defaults(handler=_handle_serve)

    search = subparsers.add_parser("search", help="Search the configured store once and print JSON.")
    search.add_argument("--query", required=True)
    search.add_argument("--limit", type=int, default=20)
    _add_store_args(search)
    search.set_defaults(handler=_handle_search)

    ai_test = subparsers.add_parser("ai-test", help="Check credentials against an AI provider.")
    ai_test.add_argument("--provider", required=True)
    ai_test.add_argument("--model", default="")
    ai_test.add_argument("--api-key", help="Credential to test (Ollama: base URL); defaults to env/.env")
    ai_test.set_defaults(handler=_handle_ai_test)

    args = parser.parse_args(provided)
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
