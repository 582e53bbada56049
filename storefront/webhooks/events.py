from enum import Enum
from typing import Any, Dict, Optional


class EventKind(str, Enum):
    """Événements Stripe consommés par la réconciliation."""
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


def event_kind(event: Dict[str, Any]) -> Optional[EventKind]:
    """EventKind de l'événement, ou None pour un type non géré."""
    try:
        return EventKind(event.get("type"))
    except ValueError:
        return None


def event_object(event: Dict[str, Any]) -> Dict[str, Any]:
    return ((event or {}).get("data") or {}).get("object") or {}
