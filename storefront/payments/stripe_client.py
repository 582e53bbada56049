"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.

Les objets Stripe sont convertis en dicts simples à la frontière (stripe_field) pour que le
reste de l'application ne dépende pas de la forme des StripeObject selon la version du SDK.
Aucun nouvel essai: les erreurs Stripe (stripe.StripeError) remontent telles quelles.
"""
import json
from typing import Any, Dict, Optional

import stripe
from fastapi import Request

from storefront.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, BASE_URL

STUDIO_SUBSCRIPTION_TYPE = "studio_systems"


class WebhookSignatureError(Exception):
    """Signature Stripe absente, invalide ou payload illisible."""


# module storefront.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def stripe_field(obj: Any, *path: Any, default: Any = None) -> Any:
    """
    Lecture tolérante d'un champ imbriqué (dict ou StripeObject).
    stripe_field(sub, "items", "data", 0, "price", "recurring", "interval")
    """
    cur = obj
    for key in path:
        if cur is None:
            return default
        try:
            cur = cur[key]
        except (KeyError, IndexError, TypeError, AttributeError):
            return default
    return default if cur is None else cur

def find_or_create_customer(email: str, name: Optional[str] = None) -> str:
    """Premier client Stripe portant cet email, sinon création. Retourne l'id client."""
    require_stripe()
    existing = stripe.Customer.list(email=email, limit=1)
    data = stripe_field(existing, "data", default=[])
    if data:
        return stripe_field(data[0], "id")
    params: Dict[str, Any] = {"email": email}
    if name:
        params["name"] = name
    customer = stripe.Customer.create(**params)
    return stripe_field(customer, "id")

def create_payment_intent(
    *,
    amount_cents: int,
    currency: str,
    email: str,
    metadata: Dict[str, str],
    name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent sur le client résolu par email.
    - automatic_payment_methods activé (choix du moyen de paiement côté Stripe)
    Retour: {"id", "client_secret", "amount", "currency", "customer"}
    """
    customer_id = find_or_create_customer(email, name)
    intent = stripe.PaymentIntent.create(
        amount=int(amount_cents),
        currency=currency.lower(),
        customer=customer_id,
        metadata=metadata,
        automatic_payment_methods={"enabled": True},
    )
    return {
        "id": stripe_field(intent, "id"),
        "client_secret": stripe_field(intent, "client_secret"),
        "amount": stripe_field(intent, "amount", default=int(amount_cents)),
        "currency": stripe_field(intent, "currency", default=currency.lower()),
        "customer": customer_id,
    }

def create_subscription(
    *,
    price_id: str,
    email: str,
    metadata: Dict[str, str],
    name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un abonnement en default_incomplete: le PaymentIntent de la première facture est
    confirmé côté client. Le client_secret vient de latest_invoice.payment_intent (étendu).
    Retour: {"id", "client_secret", "status", "customer"}
    """
    customer_id = find_or_create_customer(email, name)
    subscription = stripe.Subscription.create(
        customer=customer_id,
        items=[{"price": price_id}],
        payment_behavior="default_incomplete",
        payment_settings={"save_default_payment_method": "on_subscription"},
        expand=["latest_invoice.payment_intent"],
        metadata=metadata,
    )
    return {
        "id": stripe_field(subscription, "id"),
        "client_secret": stripe_field(subscription, "latest_invoice", "payment_intent", "client_secret", default=""),
        "status": stripe_field(subscription, "status"),
        "customer": customer_id,
    }

def cancel_payment_intent(payment_intent_id: str) -> None:
    """Annule un PaymentIntent non encore confirmé (le client_secret devient inutilisable)."""
    require_stripe()
    stripe.PaymentIntent.cancel(payment_intent_id)

def cancel_subscription(subscription_id: str) -> None:
    require_stripe()
    stripe.Subscription.cancel(subscription_id)

def subscription_snapshot(subscription: Any) -> Dict[str, Any]:
    """
    Normalise un abonnement Stripe (objet SDK ou dict d'événement).
    Les bornes de période sont lues sur l'abonnement, sinon sur son premier item
    (versions récentes de l'API).
    """
    first_item = stripe_field(subscription, "items", "data", 0, default={})
    return {
        "id": stripe_field(subscription, "id"),
        "customer": stripe_field(subscription, "customer"),
        "status": stripe_field(subscription, "status"),
        "current_period_start": stripe_field(subscription, "current_period_start")
        or stripe_field(first_item, "current_period_start"),
        "current_period_end": stripe_field(subscription, "current_period_end")
        or stripe_field(first_item, "current_period_end"),
        "cancel_at_period_end": bool(stripe_field(subscription, "cancel_at_period_end", default=False)),
        "interval": stripe_field(first_item, "price", "recurring", "interval"),
        "amount_cents": int(stripe_field(first_item, "price", "unit_amount", default=0)),
        "metadata": dict(stripe_field(subscription, "metadata", default={})),
    }

def retrieve_subscription(subscription_id: str) -> Dict[str, Any]:
    """Relit l'abonnement chez Stripe (source de vérité pour les périodes)."""
    require_stripe()
    return subscription_snapshot(stripe.Subscription.retrieve(subscription_id))

def create_studio_checkout_session(*, user_id: str, email: Optional[str], price_id: str) -> Dict[str, Any]:
    """
    Session Checkout (mode subscription) pour l'adhésion Studio Systems.
    - metadata et subscription_data.metadata: {userId, subscriptionType}
    Retour: {"id", "url"}
    """
    require_stripe()
    metadata = {"userId": str(user_id), "subscriptionType": STUDIO_SUBSCRIPTION_TYPE}
    params: Dict[str, Any] = {
        "mode": "subscription",
        "payment_method_types": ["card"],
        "line_items": [{"price": price_id, "quantity": 1}],
        "client_reference_id": str(user_id),
        "success_url": f"{BASE_URL}/studio?success=true",
        "cancel_url": f"{BASE_URL}/studio/subscribe?canceled=true",
        "metadata": metadata,
        "subscription_data": {"metadata": metadata},
    }
    if email:
        params["customer_email"] = email
    session = stripe.checkout.Session.create(**params)
    return {"id": stripe_field(session, "id"), "url": stripe_field(session, "url")}

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Vérifie la signature (STRIPE_WEBHOOK_SECRET) avant toute lecture du contenu
    Retour: l'événement sous forme de dict.
    Lève WebhookSignatureError si la signature ou le payload est invalide.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    if not STRIPE_WEBHOOK_SECRET or not sig_header:
        raise WebhookSignatureError("missing signature or webhook secret")
    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            body, sig_header, STRIPE_WEBHOOK_SECRET, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
        )
        event = json.loads(body)
    except (stripe.SignatureVerificationError, ValueError) as e:
        raise WebhookSignatureError(str(e)) from e
    if not isinstance(event, dict):
        raise WebhookSignatureError("event payload is not an object")
    return event
