"""
Réconciliation des événements Stripe: table de dispatch exhaustive EventKind -> handler.
Les types non gérés passent par une branche explicite 'ignored'.
"""
import logging
from typing import Any, Callable, Dict

from . import handlers
from .events import EventKind, event_kind, event_object

logger = logging.getLogger(__name__)

HANDLERS: Dict[EventKind, Callable[[Dict[str, Any]], None]] = {
    EventKind.PAYMENT_INTENT_SUCCEEDED: handlers.handle_payment_intent_succeeded,
    EventKind.CHECKOUT_SESSION_COMPLETED: handlers.handle_checkout_session_completed,
    EventKind.INVOICE_PAYMENT_SUCCEEDED: handlers.handle_invoice_payment_succeeded,
    EventKind.SUBSCRIPTION_UPDATED: handlers.handle_subscription_change,
    EventKind.SUBSCRIPTION_DELETED: handlers.handle_subscription_change,
}

# module storefront.webhooks.service
def reconcile(event: Dict[str, Any]) -> str:
    """
    Applique un événement Stripe déjà vérifié.
    Retour: "handled" ou "ignored". Les erreurs inattendues remontent (Stripe relivrera).
    """
    kind = event_kind(event)
    if kind is None:
        logger.info("Unhandled event type %s id=%s", event.get("type"), event.get("id"))
        return "ignored"
    logger.info("Stripe event %s id=%s", kind.value, event.get("id"))
    HANDLERS[kind](event_object(event))
    return "handled"
