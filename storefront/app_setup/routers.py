"""
Registre central des routers.
- API v1: checkout, purchases, cart, leads, studio, webhook Stripe
- Health: health_router
"""
from fastapi import FastAPI

from storefront.cart import views as cart_views
from storefront.health.router import router as health_router
from storefront.leads import views as leads_views
from storefront.payments import views as payments_views
from storefront.studio import views as studio_views
from storefront.webhooks import views as webhooks_views


def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(payments_views.router)
    app.include_router(payments_views.purchases_router)
    app.include_router(cart_views.router)
    app.include_router(leads_views.router)
    app.include_router(studio_views.router)
    app.include_router(webhooks_views.router)
    # Health & monitoring
    app.include_router(health_router)
