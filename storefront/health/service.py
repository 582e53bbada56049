# module storefront.health.service
from typing import Any, Dict
from urllib.parse import urlparse
import socket

from storefront.config import SENDGRID_API_KEY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, SUPABASE_URL
from storefront.infra import supabase_client

HEALTH_TABLES = ("purchases", "leads", "education_subscriptions", "dashboard_products", "notion_products")

def _check_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info() -> Dict[str, Any]:
    """
    Diagnostic Supabase: résolution DNS de l'hôte puis lecture d'une ligne par table métier.
    Ne lève jamais: les erreurs sont rapportées dans le dict.
    """
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info: Dict[str, Any] = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_service_supabase()
        for table in HEALTH_TABLES:
            info["tables"][table] = _check_table(client, table)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info

def integrations_info() -> Dict[str, bool]:
    return {
        "stripe": bool(STRIPE_SECRET_KEY),
        "stripe_webhook": bool(STRIPE_WEBHOOK_SECRET),
        "sendgrid": bool(SENDGRID_API_KEY),
    }
