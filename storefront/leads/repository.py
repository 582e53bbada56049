"""
Accès aux données pour la feature 'leads' (table 'leads').
Un lead n'est jamais modifié, sauf l'horodatage d'envoi de l'email de livraison.
"""
from datetime import datetime, timezone
from typing import List, Optional
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def _table():
    return supabase_client.get_service_supabase().table("leads")

# module storefront.leads.repository
def insert_lead(*, email: str, name: Optional[str], product_slug: str, product_name: str, source: str) -> Optional[dict]:
    """
    Insère un lead via service-role. Retourne la ligne insérée, ou None en cas d'erreur.
    """
    try:
        res = _table().insert({
            "email": email,
            "name": name,
            "product_slug": product_slug,
            "product_name": product_name,
            "source": source,
        }).execute()
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("leads.repository.insert_lead failed email=%s source=%s", email, source)
        return None

def find_lead(email: str, source: str) -> Optional[dict]:
    res = _table().select("*").eq("email", email).eq("source", source).limit(1).execute()
    rows = res.data or []
    return rows[0] if rows else None

def mark_lead_delivered(lead_id: int) -> None:
    try:
        _table().update({"delivery_email_sent_at": datetime.now(timezone.utc).isoformat()}).eq("id", lead_id).execute()
    except Exception:
        logger.exception("leads.repository.mark_lead_delivered failed lead_id=%s", lead_id)

def list_leads(source: Optional[str] = None, limit: int = 500) -> List[dict]:
    try:
        query = _table().select("*")
        if source:
            query = query.eq("source", source)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception:
        logger.exception("leads.repository.list_leads failed source=%s", source)
        return []
