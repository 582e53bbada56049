"""
Accès aux données pour la feature 'payments' (table 'purchases').

Statuts: pending -> completed (terminal). Les lectures utilisées par le webhook laissent
remonter les erreurs d'accès: un échec transitoire doit provoquer une nouvelle livraison
de l'événement par Stripe plutôt qu'un abandon silencieux.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PURCHASE_STATUSES = ("pending", "completed", "failed", "refunded")

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def _table():
    return supabase_client.get_service_supabase().table("purchases")

# module storefront.payments.repository
def create_purchase(
    *,
    product_id: int,
    customer_email: str,
    customer_name: Optional[str],
    amount_cents: int,
    currency: str,
    quantity: int = 1,
    stripe_payment_intent_id: Optional[str] = None,
    stripe_subscription_id: Optional[str] = None,
    stripe_customer_id: Optional[str] = None,
    billing_interval: Optional[str] = None,
) -> Optional[dict]:
    """
    Enregistre un achat 'pending' corrélé à un PaymentIntent ou à un abonnement Stripe.
    - Retourne la ligne insérée, ou None en cas d'erreur (journalisée).
    """
    row = {
        "product_id": product_id,
        "customer_email": customer_email,
        "customer_name": customer_name,
        "amount_paid_cents": int(amount_cents),
        "currency": currency,
        "quantity": int(quantity),
        "status": "pending",
        "stripe_payment_intent_id": stripe_payment_intent_id,
        "stripe_subscription_id": stripe_subscription_id,
        "stripe_customer_id": stripe_customer_id,
        "billing_interval": billing_interval,
    }
    try:
        res = _table().insert(row).execute()
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception(
            "payments.repository.create_purchase failed product_id=%s intent=%s subscription=%s",
            product_id, stripe_payment_intent_id, stripe_subscription_id,
        )
        return None

def get_purchases_by_payment_intent_id(payment_intent_id: str) -> List[dict]:
    res = _table().select("*").eq("stripe_payment_intent_id", payment_intent_id).execute()
    return res.data or []

def get_purchase_by_subscription_id(subscription_id: str) -> Optional[dict]:
    res = _table().select("*").eq("stripe_subscription_id", subscription_id).limit(1).execute()
    rows = res.data or []
    return rows[0] if rows else None

def update_purchase_status(purchase_id: int, status: str) -> None:
    """Transition de statut; réappliquer 'completed' est sans effet (idempotent)."""
    if status not in PURCHASE_STATUSES:
        raise ValueError(f"Unknown purchase status: {status}")
    _table().update({"status": status, "updated_at": _now()}).eq("id", purchase_id).execute()

def claim_delivery_email(purchase_id: int) -> bool:
    """
    Réserve l'envoi de l'email de livraison de manière atomique:
    UPDATE ... SET delivery_email_sent_at = now WHERE id = ? AND delivery_email_sent_at IS NULL.
    - True: cet appel a obtenu la réservation et doit envoyer l'email
    - False: l'email a déjà été envoyé (ou réservé par une livraison concurrente)
    """
    res = (
        _table()
        .update({"delivery_email_sent_at": _now()})
        .eq("id", purchase_id)
        .is_("delivery_email_sent_at", "null")
        .execute()
    )
    return bool(res.data)

def release_delivery_email(purchase_id: int) -> None:
    """Annule une réservation après un échec d'envoi (une relivraison pourra réessayer)."""
    try:
        _table().update({"delivery_email_sent_at": None}).eq("id", purchase_id).execute()
    except Exception:
        logger.exception("payments.repository.release_delivery_email failed purchase_id=%s", purchase_id)

def list_purchases(email: Optional[str] = None, limit: int = 200) -> List[Dict[str, Any]]:
    """Achats les plus récents d'abord, filtrés par email client si fourni."""
    try:
        query = _table().select("*")
        if email:
            query = query.ilike("customer_email", email.strip())
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_purchases failed email=%s", email)
        return []
