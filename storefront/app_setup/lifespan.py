"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre locale en mémoire si l'init échoue
  - RATE_LIMIT_REDIS_URL: URL Redis (défaut redis://127.0.0.1:6379/0)
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter
from redis import asyncio as aioredis

logger = logging.getLogger("uvicorn.error")


def _redis_connection():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        from fakeredis.aioredis import FakeRedis
        return FakeRedis(decode_responses=True)
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
    return aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Configure le rate limiting du checkout.
    Un Redis indisponible n'empêche jamais le démarrage: le limiter est désactivé
    (ou remplacé par la fenêtre locale) et l'état effectif est journalisé.
    """
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        yield
        return

    redis_conn = None
    try:
        redis_conn = _redis_connection()
        await FastAPILimiter.init(redis_conn)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
    except Exception as e:
        redis_conn = None
        app.state.rate_limit_enabled = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        if app.state.rate_limit_enabled:
            logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
        else:
            logger.warning("Rate limiting disabled due to init error: %s", e)

    yield

    if redis_conn is not None:
        await FastAPILimiter.close()
