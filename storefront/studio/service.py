"""
Cas d'usage Studio Systems: checkout d'adhésion, état de l'adhésion, et réconciliation des
événements Stripe (checkout.session.completed, customer.subscription.*).

Le statut est recopié tel quel depuis Stripe (active, trialing, past_due, unpaid, canceled);
aucune règle métier n'est calculée ici.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException

from storefront.config import STRIPE_STUDIO_MONTHLY_PRICE_ID, STRIPE_STUDIO_YEARLY_PRICE_ID
from storefront.emails import service as emails_service
from storefront.payments import stripe_client
from storefront.payments.stripe_client import STUDIO_SUBSCRIPTION_TYPE, stripe_field
from . import repository

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("active", "trialing")

def _price_map() -> Dict[str, str]:
    return {"price_monthly": STRIPE_STUDIO_MONTHLY_PRICE_ID, "price_yearly": STRIPE_STUDIO_YEARLY_PRICE_ID}

def _iso(ts: Optional[int]) -> Optional[str]:
    if not ts:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).isoformat()

def is_studio_metadata(metadata: Optional[Dict[str, Any]]) -> bool:
    return (metadata or {}).get("subscriptionType") == STUDIO_SUBSCRIPTION_TYPE

def tier_for_interval(interval: Optional[str]) -> str:
    return "yearly" if interval == "year" else "monthly"

# module storefront.studio.service
def start_checkout(user: Dict[str, Any], plan: str) -> Dict[str, Any]:
    """
    Session Checkout Stripe pour l'adhésion.
    - plan: "price_monthly" | "price_yearly" (mappé vers les price IDs configurés)
    - 400 si le plan est inconnu ou non configuré
    """
    if plan not in _price_map():
        raise HTTPException(status_code=400, detail="Invalid plan")
    price_id = _price_map()[plan]
    if not price_id:
        raise HTTPException(status_code=400, detail="Price not configured")
    session = stripe_client.create_studio_checkout_session(
        user_id=user.get("id"),
        email=user.get("email"),
        price_id=price_id,
    )
    return {"url": session.get("url")}

def get_status(user_id: str) -> Dict[str, Any]:
    """Adhésion active: statut active/trialing et fin de période absente ou future."""
    row = repository.get_subscription_for_user(user_id)
    if not row:
        return {"hasSubscription": False, "isActive": False, "subscription": None}

    period_end = row.get("current_period_end")
    still_running = True
    if period_end:
        end = datetime.fromisoformat(str(period_end).replace("Z", "+00:00"))
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        still_running = end > datetime.now(timezone.utc)
    return {
        "hasSubscription": True,
        "isActive": row.get("status") in ACTIVE_STATUSES and still_running,
        "subscription": {
            "tier": row.get("tier"),
            "status": row.get("status"),
            "currentPeriodEnd": period_end,
            "cancelAtPeriodEnd": bool(row.get("cancel_at_period_end")),
        },
    }

def handle_checkout_completed(session: Dict[str, Any]) -> bool:
    """
    checkout.session.completed d'une adhésion Studio Systems.
    - Ignoré (False) si la session n'est pas marquée studio_systems
    - Relit l'abonnement chez Stripe pour les bornes de période, puis upsert par user_id
    - Email de bienvenue et notification admin en best-effort
    """
    metadata = session.get("metadata") or {}
    if not is_studio_metadata(metadata):
        logger.info("checkout.session.completed ignored (not a studio session) id=%s", session.get("id"))
        return False

    user_id = metadata.get("userId") or session.get("client_reference_id")
    subscription_id = session.get("subscription")
    if not user_id or not subscription_id:
        logger.warning("Studio checkout without user or subscription id session=%s", session.get("id"))
        return False

    snapshot = stripe_client.retrieve_subscription(subscription_id)
    tier = tier_for_interval(snapshot.get("interval"))
    repository.upsert_subscription({
        "user_id": str(user_id),
        "tier": tier,
        "stripe_subscription_id": subscription_id,
        "stripe_customer_id": session.get("customer") or snapshot.get("customer"),
        "status": snapshot.get("status"),
        "current_period_start": _iso(snapshot.get("current_period_start")),
        "current_period_end": _iso(snapshot.get("current_period_end")),
        "cancel_at_period_end": snapshot.get("cancel_at_period_end", False),
    })
    logger.info("Studio subscription upserted user_id=%s tier=%s status=%s", user_id, tier, snapshot.get("status"))

    email = stripe_field(session, "customer_details", "email") or session.get("customer_email")
    name = stripe_field(session, "customer_details", "name")
    amount = session.get("amount_total") or snapshot.get("amount_cents") or 0
    _notify_new_member(email=email, name=name, tier=tier, amount_cents=amount)
    return True

def _notify_new_member(*, email: Optional[str], name: Optional[str], tier: str, amount_cents: int) -> None:
    try:
        if email:
            result = emails_service.send_studio_welcome(to=email, name=name)
            if not result.get("success"):
                logger.warning("Studio welcome email not sent to=%s error=%s", email, result.get("error"))
        result = emails_service.send_admin_new_member(email=email or "unknown", name=name, tier=tier, amount_cents=amount_cents)
        if not result.get("success"):
            logger.warning("Studio admin notification not sent error=%s", result.get("error"))
    except Exception:
        logger.exception("Studio membership emails failed email=%s", email)

def sync_subscription(snapshot: Dict[str, Any]) -> int:
    """
    customer.subscription.updated/deleted d'une adhésion: recopie statut, périodes et
    cancel_at_period_end. Retourne le nombre de lignes mises à jour.
    """
    updated = repository.update_by_subscription_id(snapshot["id"], {
        "status": snapshot.get("status"),
        "current_period_start": _iso(snapshot.get("current_period_start")),
        "current_period_end": _iso(snapshot.get("current_period_end")),
        "cancel_at_period_end": snapshot.get("cancel_at_period_end", False),
    })
    if not updated:
        logger.warning("No studio membership for subscription=%s", snapshot["id"])
    return updated
