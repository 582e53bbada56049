"""
Accès aux données pour l'adhésion Studio Systems (table 'education_subscriptions').
Au plus une ligne par utilisateur: upsert sur user_id.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def _table():
    return supabase_client.get_service_supabase().table("education_subscriptions")

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

# module storefront.studio.repository
def upsert_subscription(row: Dict[str, Any]) -> Optional[dict]:
    """Insère ou met à jour l'adhésion de row['user_id'] (les erreurs remontent)."""
    res = _table().upsert({**row, "updated_at": _now()}, on_conflict="user_id").execute()
    rows = res.data or []
    return rows[0] if rows else None

def update_by_subscription_id(stripe_subscription_id: str, changes: Dict[str, Any]) -> int:
    """Met à jour l'adhésion liée à un abonnement Stripe. Retourne le nombre de lignes modifiées."""
    res = (
        _table()
        .update({**changes, "updated_at": _now()})
        .eq("stripe_subscription_id", stripe_subscription_id)
        .execute()
    )
    return len(res.data or [])

def get_subscription_for_user(user_id: str) -> Optional[dict]:
    try:
        res = _table().select("*").eq("user_id", user_id).limit(1).execute()
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("studio.repository.get_subscription_for_user failed user_id=%s", user_id)
        return None
