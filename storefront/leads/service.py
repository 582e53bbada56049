"""
Cas d'usage 'leads': produits gratuits (lead magnets) et liste d'attente Studio Systems.

deliver_free_product est le chemin unique de livraison d'un produit gratuit, indexé par slug:
il sert au formulaire de téléchargement gratuit et à la finalisation d'un panier à 0.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException

from storefront.catalog import notion_prices
from storefront.emails import service as emails_service
from . import repository
from .models import ClaimFreeProductRequest, WaitlistRequest

logger = logging.getLogger(__name__)

FREE_PRODUCT_SOURCE = "free_product"
WAITLIST_SOURCE = "studio_waitlist"
WAITLIST_PRODUCT_SLUG = "studio-systems"
WAITLIST_PRODUCT_NAME = "Studio Systems Waitlist"

# module storefront.leads.service
def deliver_free_product(*, slug: str, email: str, name: Optional[str] = None, product_name: Optional[str] = None) -> bool:
    """
    Livraison d'un produit gratuit:
    - Vérifie la configuration gratuite (URL de téléchargement requise)
    - Enregistre le lead (source 'free_product')
    - Envoie l'email "Your Free Download" puis horodate le lead si l'envoi réussit
    Retour: True si l'email est parti.
    """
    config = notion_prices.get_free_notion_config(slug)
    if not config or not config.download_url:
        logger.warning("leads.deliver_free_product: no free config for slug=%s", slug)
        return False

    display_name = product_name or slug
    lead = repository.insert_lead(
        email=email,
        name=name,
        product_slug=slug,
        product_name=display_name,
        source=FREE_PRODUCT_SOURCE,
    )
    result = emails_service.send_free_product(
        to=email,
        customer_name=name,
        product_name=display_name,
        download_url=config.download_url,
    )
    if not result.get("success"):
        logger.error("Free product email failed slug=%s email=%s error=%s", slug, email, result.get("error"))
        return False
    if lead:
        repository.mark_lead_delivered(lead["id"])
    return True

def claim_free_product(req: ClaimFreeProductRequest) -> Dict[str, Any]:
    config = notion_prices.get_free_notion_config(req.product_slug)
    if not config or not config.download_url:
        raise HTTPException(status_code=400, detail="Product download not configured")
    sent = deliver_free_product(
        slug=req.product_slug,
        email=str(req.email),
        name=req.name,
        product_name=req.product_name,
    )
    return {"success": True, "message": "Check your email for the download link!", "emailSent": sent}

def join_waitlist(req: WaitlistRequest) -> Dict[str, Any]:
    """
    Inscription à la liste d'attente Studio Systems.
    - Email normalisé en minuscules; doublon -> 400
    - Notification admin best-effort (un échec n'annule pas l'inscription)
    """
    email = str(req.email).strip().lower()
    if repository.find_lead(email, WAITLIST_SOURCE):
        raise HTTPException(status_code=400, detail="You are already on the waitlist!")

    lead = repository.insert_lead(
        email=email,
        name=req.name,
        product_slug=WAITLIST_PRODUCT_SLUG,
        product_name=WAITLIST_PRODUCT_NAME,
        source=WAITLIST_SOURCE,
    )
    if not lead:
        raise HTTPException(status_code=500, detail="Failed to join waitlist")

    result = emails_service.send_admin_waitlist_signup(email=email, name=req.name)
    if not result.get("success"):
        logger.warning("Waitlist admin notification not sent email=%s error=%s", email, result.get("error"))
    return {"success": True, "message": "You're on the waitlist!", "lead": lead}
