from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import hashlib
import logging
import os
import time

from storefront.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

def _client_key(request: Request) -> str:
    # Priorité: session cookie (hashé) puis IP
    token = request.cookies.get(COOKIE_NAME)
    path = request.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de rate limiting tolérante:
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (app.state)
    - rate limiting désactivé par le lifespan: no-op
    - sinon fastapi-limiter (Redis); une panne du limiter ne bloque jamais le checkout
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _client_key(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter

        async def _identifier(req: Request) -> str:
            return _client_key(req)

        try:
            await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            logger.warning("rate limiter unavailable for %s", request.url.path, exc_info=True)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    from fastapi_limiter import FastAPILimiter

    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    ready = getattr(FastAPILimiter, "redis", None) is not None
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": ready,
        "backend": "redis" if ready else None,
    }
