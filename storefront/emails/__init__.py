"""
Module 'emails': point d'entrée public.
Réunit rendu Jinja2 (templates/), envoi SendGrid et emails transactionnels de la boutique.
"""

from .rendering import render, format_price, thank_you_url
from .sender import send_email, strip_tags
from .service import (
    send_purchase_confirmation,
    send_subscription_welcome,
    send_free_product,
    send_studio_welcome,
    send_admin_new_member,
    send_admin_waitlist_signup,
)

__all__ = [
    # rendering
    "render",
    "format_price",
    "thank_you_url",
    # sender
    "send_email",
    "strip_tags",
    # service
    "send_purchase_confirmation",
    "send_subscription_welcome",
    "send_free_product",
    "send_studio_welcome",
    "send_admin_new_member",
    "send_admin_waitlist_signup",
]
