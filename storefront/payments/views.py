import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.utils.security import require_admin
from storefront.utils.rate_limit import optional_rate_limit
from storefront.payments import repository as payments_repo
from storefront.payments import service as payments_service
from storefront.payments.models import (
    CartCheckoutRequest,
    NotionCheckoutRequest,
    PaymentIntentRequest,
    SubscriptionRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])
purchases_router = APIRouter(prefix="/api/v1/purchases", tags=["Purchases API"])

def _checkout_failed(action: str, e: Exception) -> HTTPException:
    logger.exception("Erreur %s", action)
    return HTTPException(status_code=500, detail=f"Failed to create checkout: {e}")

# module storefront.payments.views
@router.post("/cart", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout_cart(body: CartCheckoutRequest) -> Dict[str, Any]:
    """
    Checkout d'un panier (produits dashboard et Notion).
    - Entrée JSON: { "items": [ { "productId", "productSource", "quantity" } ], "customerEmail", "customerName"? }
    - Prix recalculés côté serveur; le panier client ne fournit que id/source/quantité
    - Réponse: {isFreeOrder, clientSecret, paymentIntentId, totalCents, items}
    - Erreurs: 400 (panier/email manquant, produit non configuré), 404 (produit inconnu), 500 (Stripe)
    """
    try:
        return payments_service.checkout_cart(body)
    except HTTPException:
        raise
    except Exception as e:
        raise _checkout_failed("checkout_cart", e)

@router.post("/cart/free", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def complete_free_cart(body: CartCheckoutRequest) -> Dict[str, Any]:
    """
    Finalise une commande gratuite (total à 0): livraison par email des produits du panier.
    """
    try:
        return payments_service.complete_free_cart(body)
    except HTTPException:
        raise
    except Exception as e:
        raise _checkout_failed("complete_free_cart", e)

@router.post("/payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(body: PaymentIntentRequest) -> Dict[str, Any]:
    try:
        return payments_service.create_product_payment_intent(body)
    except HTTPException:
        raise
    except Exception as e:
        raise _checkout_failed("create_payment_intent", e)

@router.post("/subscription", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_subscription(body: SubscriptionRequest) -> Dict[str, Any]:
    """
    Abonnement à un produit dashboard; renvoie le client_secret de la première facture.
    """
    try:
        return payments_service.create_product_subscription(body)
    except HTTPException:
        raise
    except Exception as e:
        raise _checkout_failed("create_subscription", e)

@router.post("/notion-product", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_notion_checkout(body: NotionCheckoutRequest) -> Dict[str, Any]:
    try:
        return payments_service.create_notion_payment_intent(body)
    except HTTPException:
        raise
    except Exception as e:
        raise _checkout_failed("create_notion_checkout", e)

@purchases_router.get("")
def list_purchases(email: Optional[str] = None, admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    """Liste admin des achats (plus récents d'abord), filtrable par email client."""
    purchases = payments_repo.list_purchases(email=email)
    return {"purchases": purchases, "count": len(purchases)}
