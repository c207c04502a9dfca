"""
Blog Feed Handler
=================

aiohttp boundary that exposes the cache gateway as a JSON endpoint.

GET answers with the record envelope, OPTIONS answers CORS preflight.
Upstream failures become a 500 envelope carrying a link to the public
blog so the page can offer it instead.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import web

from ..cache.gateway import CacheGateway, create_gateway, format_timestamp
from ..config.settings import BlogFeedSettings, get_settings
from ..ingestion.feed_fetcher import create_connector
from ..ingestion.models import FeedSnapshot
from ..utils.exceptions import handle_exception
from ..utils.logging import get_logger_for_component


SETTINGS_KEY = web.AppKey("settings", BlogFeedSettings)
GATEWAY_KEY = web.AppKey("gateway", CacheGateway)

ERROR_MESSAGE = "Unable to fetch blog posts"

logger = get_logger_for_component("feed_handler")


def cors_headers(allowed_origin: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allowed_origin,
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def snapshot_envelope(snapshot: FeedSnapshot) -> Dict[str, Any]:
    """Success body for one gateway read."""
    return {
        "status": "ok",
        "items": [record.to_payload() for record in snapshot.records],
        "count": snapshot.count,
        "updatedAt": format_timestamp(snapshot.updated_at),
        "cached": snapshot.cached,
    }


def error_envelope(detail: str, fallback_url: Optional[str] = None) -> Dict[str, Any]:
    body = {"status": "error", "message": ERROR_MESSAGE, "error": detail}
    if fallback_url:
        body["fallbackUrl"] = fallback_url
    return body


async def get_blog_feed(request: web.Request) -> web.Response:
    """Serve the current blog records."""
    settings = request.app[SETTINGS_KEY]
    gateway = request.app[GATEWAY_KEY]
    headers = cors_headers(settings.server.allowed_origin)

    try:
        snapshot = await asyncio.wait_for(gateway.get(), settings.limits.handler_timeout)
    except Exception as e:
        error = handle_exception(e, logger, "blog feed read")
        return web.json_response(
            error_envelope(str(error), str(settings.feed.canonical_url)),
            status=500,
            headers=headers,
        )

    logger.debug(f"Serving {snapshot.count} records (cached={snapshot.cached})")
    return web.json_response(snapshot_envelope(snapshot), status=200, headers=headers)


async def preflight(request: web.Request) -> web.Response:
    """Answer CORS preflight."""
    settings = request.app[SETTINGS_KEY]
    headers = cors_headers(settings.server.allowed_origin)
    headers["Access-Control-Max-Age"] = "86400"
    return web.Response(status=200, headers=headers)


async def _upstream_session(app: web.Application):
    """Share one client session across requests when no gateway was injected."""
    if GATEWAY_KEY in app:
        yield
        return

    async with aiohttp.ClientSession(connector=create_connector()) as session:
        app[GATEWAY_KEY] = create_gateway(app[SETTINGS_KEY], session=session)
        yield


def create_app(
    settings: Optional[BlogFeedSettings] = None,
    gateway: Optional[CacheGateway] = None,
) -> web.Application:
    """Build the web application.

    Args:
        settings: Application settings (global settings when omitted)
        gateway: Prebuilt gateway; one is wired from settings at startup otherwise
    """
    settings = settings or get_settings()

    app = web.Application()
    app[SETTINGS_KEY] = settings
    if gateway is not None:
        app[GATEWAY_KEY] = gateway

    app.cleanup_ctx.append(_upstream_session)
    app.router.add_get(settings.server.route, get_blog_feed)
    app.router.add_route("OPTIONS", settings.server.route, preflight)
    return app
