"""
Factory d'application utilisée par les entrypoints (storefront.app, storefront.asgi).
"""
from fastapi import FastAPI

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .routers import register_routers


def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base puis sécurité/CSRF
      - gestionnaires d'exceptions ({"message": ...})
      - tous les routers (checkout, panier, leads, studio, webhook, health)
    """
    app = FastAPI(title="Oceoluxe Storefront API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
