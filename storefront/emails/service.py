"""
Emails transactionnels de la boutique: rendu des templates Jinja2 puis envoi via sender.

Chaque fonction renvoie le résultat de sender.send_email ({"success": bool, ...}) et ne lève pas
sur un échec d'envoi.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storefront.config import ADMIN_NOTIFICATION_EMAIL, BASE_URL
from . import sender
from .rendering import render, format_price, thank_you_url

logger = logging.getLogger(__name__)

STUDIO_WELCOME_SUBJECT = "Welcome to Studio Systems - Let's Get Started!"

# module storefront.emails.service
def send_purchase_confirmation(
    *,
    to: str,
    customer_name: Optional[str],
    product_name: str,
    product_slug: str,
    amount_cents: int,
    currency: str,
    delivery_type: str,
    download_url: Optional[str] = None,
    access_instructions: Optional[str] = None,
    product_description: Optional[str] = None,
    is_subscription: bool = False,
    billing_interval: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Confirmation d'achat unique avec bloc de livraison selon delivery_type:
    - download + url: bouton "Download Now"
    - access + instructions: instructions d'accès
    - email + url: bouton "Get Your Template" et étapes de duplication
    - email + instructions: instructions seules
    """
    html = render(
        "purchase_confirmation.html",
        customer_name=customer_name,
        product_name=product_name,
        product_description=product_description,
        amount=format_price(amount_cents, currency),
        delivery_type=delivery_type,
        download_url=download_url,
        access_instructions=access_instructions,
        is_subscription=is_subscription,
        billing_interval=billing_interval or "month",
        thank_you_url=thank_you_url(product_slug) if product_slug else None,
    )
    return sender.send_email(to, f"Your Oceoluxe order: {product_name}", html)

def send_subscription_welcome(
    *,
    to: str,
    customer_name: Optional[str],
    product_name: str,
    product_slug: str,
    amount_cents: int,
    currency: str,
    billing_interval: Optional[str] = "month",
    access_instructions: Optional[str] = None,
) -> Dict[str, Any]:
    html = render(
        "subscription_welcome.html",
        customer_name=customer_name,
        product_name=product_name,
        amount=format_price(amount_cents, currency),
        billing_interval=billing_interval or "month",
        access_instructions=access_instructions,
        thank_you_url=thank_you_url(product_slug) if product_slug else None,
    )
    return sender.send_email(to, f"Welcome to {product_name}!", html)

def send_free_product(*, to: str, customer_name: Optional[str], product_name: str, download_url: str) -> Dict[str, Any]:
    html = render(
        "free_product.html",
        customer_name=customer_name,
        product_name=product_name,
        download_url=download_url,
    )
    return sender.send_email(to, f"Your Free Download: {product_name}", html)

def send_studio_welcome(*, to: str, name: Optional[str]) -> Dict[str, Any]:
    html = render("studio_welcome.html", customer_name=name, dashboard_url=f"{BASE_URL}/studio")
    return sender.send_email(to, STUDIO_WELCOME_SUBJECT, html)

def _send_admin(subject: str, heading: str, rows) -> Dict[str, Any]:
    if not ADMIN_NOTIFICATION_EMAIL:
        logger.warning("ADMIN_NOTIFICATION_EMAIL not set, admin notification skipped: %s", subject)
        return {"success": False, "error": "Admin email not configured"}
    html = render(
        "admin_notification.html",
        heading=heading,
        rows=rows,
        received_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
    )
    return sender.send_email(ADMIN_NOTIFICATION_EMAIL, subject, html)

def send_admin_new_member(*, email: str, name: Optional[str], tier: str, amount_cents: int) -> Dict[str, Any]:
    tier_label = "Annual" if tier == "yearly" else "Monthly"
    rows = [
        ("Name", name or "Not provided"),
        ("Email", email),
        ("Plan", tier_label),
        ("Amount", format_price(amount_cents, "usd")),
    ]
    return _send_admin(f"New Studio Member: {name or email} ({tier_label})", "New Studio Systems Member!", rows)

def send_admin_waitlist_signup(*, email: str, name: Optional[str]) -> Dict[str, Any]:
    rows = [("Name", name or "Not provided"), ("Email", email)]
    return _send_admin(f"New Studio Systems Waitlist Signup: {name or email}", "New Waitlist Signup", rows)
