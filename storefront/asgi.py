"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn + UvicornWorker).
Toute la configuration est centralisée dans storefront.app_setup.factory.
"""
from storefront.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "storefront.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
