# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

EMAIL_TEMPLATES_DIR = Path(__file__).resolve().parent / "emails" / "templates"

"""
Configuration centrale de la boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, SendGrid)
- Sécurité cookies, CORS/hosts, session (panier)
- Identifiants de prix Studio Systems et adresses d'expédition des emails
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URL et clés (anon/service)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")
ADMIN_EMAILS = [e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Stripe: clés privées, secret webhook et prix Studio Systems
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_STUDIO_MONTHLY_PRICE_ID = _clean_env(os.getenv("STRIPE_STUDIO_MONTHLY_PRICE_ID") or "")
STRIPE_STUDIO_YEARLY_PRICE_ID = _clean_env(os.getenv("STRIPE_STUDIO_YEARLY_PRICE_ID") or "")
DEFAULT_CURRENCY = _clean_env(os.getenv("DEFAULT_CURRENCY") or "usd").lower()

# SendGrid: clé API et identité d'expéditeur
SENDGRID_API_KEY = _clean_env(os.getenv("SENDGRID_API_KEY") or "")
FROM_EMAIL = _clean_env(os.getenv("FROM_EMAIL") or "hello@oceoluxe.com")
FROM_NAME = _clean_env(os.getenv("FROM_NAME") or "Oceoluxe")
ADMIN_NOTIFICATION_EMAIL = _clean_env(os.getenv("ADMIN_NOTIFICATION_EMAIL") or "")

# Panier (session cookie)
CART_STORAGE_KEY = "oceoluxe-cart"

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000").rstrip("/")
