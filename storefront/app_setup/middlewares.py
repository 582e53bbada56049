"""
Middlewares transverses de l'application.
- register_basic_middlewares: session (panier), CORS, TrustedHost et confiance en X-Forwarded-*.
- register_security_middleware: en-têtes de sécurité et protection CSRF pour les requêtes authentifiées.
Le webhook Stripe est exempté du CSRF: il est authentifié par sa signature.
"""
import secrets

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from storefront.config import ALLOWED_HOSTS, COOKIE_SECURE, CORS_ORIGINS, SESSION_SECRET_KEY
from storefront.utils.security import COOKIE_NAME

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_EXEMPT_PATHS = {
    "/api/v1/stripe/webhook",
}


def register_basic_middlewares(app: FastAPI) -> None:
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        https_only=COOKIE_SECURE,
        same_site="lax",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )
    # X-Forwarded-* (Render, Nginx, etc.)
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])


def register_security_middleware(app: FastAPI) -> None:
    """
    - CSRF: X-CSRF-Token doit égaler le cookie csrf_token sur les requêtes mutatives
      portant un cookie de session Supabase (sb_access)
    - En-têtes: X-Frame-Options, X-Content-Type-Options, Referrer-Policy, HSTS (si secure)
    - Dépose un cookie CSRF lisible par le front s'il manque
    """
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        method = request.method.upper()
        path = request.url.path.rstrip("/") or "/"
        has_session = bool(request.cookies.get(COOKIE_NAME))
        is_state_changing = method in ("POST", "PUT", "PATCH", "DELETE")
        csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)

        if is_state_changing and has_session and path not in CSRF_EXEMPT_PATHS:
            header_token = request.headers.get(CSRF_HEADER_NAME, "")
            if not csrf_cookie or not header_token or not secrets.compare_digest(header_token, csrf_cookie):
                return JSONResponse(status_code=403, content={"message": "CSRF verification failed"})

        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")

        if not csrf_cookie:
            response.set_cookie(
                key=CSRF_COOKIE_NAME,
                value=secrets.token_urlsafe(32),
                httponly=False,
                secure=COOKIE_SECURE,
                samesite="Lax",
                max_age=60 * 60,
                path="/",
            )
        return response
