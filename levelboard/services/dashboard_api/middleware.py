"""
LevelBoard - Dashboard API Middleware
=====================================

Request filtering, rate limiting and security headers for the dashboard API.
"""

from aiohttp import web

from levelboard.core.logger import logger
from levelboard.utils.api_cache import RateLimiter


CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

# Paths exempt from rate limiting
UNLIMITED_PATHS = frozenset({"/health"})


def get_client_ip(request: web.Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.remote:
        return request.remote

    return "unknown"


@web.middleware
async def block_server_actions_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Reject framework "server action" style requests outright."""
    content_type = request.headers.get("Content-Type", "").lower()
    if request.headers.get("Next-Action") or "action" in content_type:
        logger.warning("Blocked Server Action Request", [
            ("IP", get_client_ip(request)),
            ("Path", request.path),
        ])
        return web.Response(text="Server Actions are not enabled", status=400)
    return await handler(request)


def make_rate_limit_middleware(rate_limiter: RateLimiter):
    """Build a middleware enforcing ``rate_limiter`` on every non-exempt path."""

    @web.middleware
    async def rate_limit_middleware(request: web.Request, handler) -> web.StreamResponse:
        if request.path in UNLIMITED_PATHS:
            return await handler(request)

        client_ip = get_client_ip(request)
        allowed, retry_after = await rate_limiter.is_allowed(client_ip)

        if not allowed:
            logger.warning("Rate Limit Exceeded", [
                ("IP", client_ip),
                ("Path", request.path),
                ("Retry-After", f"{retry_after}s"),
            ])
            return web.json_response(
                {"error": "Rate limit exceeded", "retry_after": retry_after},
                status=429,
                headers={"Retry-After": str(retry_after), **CORS_HEADERS},
            )

        return await handler(request)

    return rate_limit_middleware


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def _apply_security_headers(response) -> None:
    response.headers.update(SECURITY_HEADERS)


@web.middleware
async def security_headers_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Add security headers to every response, raised HTTP errors included."""
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        _apply_security_headers(exc)
        raise
    _apply_security_headers(response)
    return response


__all__ = [
    "CORS_HEADERS",
    "get_client_ip",
    "block_server_actions_middleware",
    "make_rate_limit_middleware",
    "security_headers_middleware",
]
