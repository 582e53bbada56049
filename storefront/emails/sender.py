"""
Adaptateur SendGrid: envoi d'un email transactionnel.

Un échec d'envoi ne lève jamais: on journalise et on renvoie {"success": False, "error": ...}.
Pas de nouvel essai dans le processus (l'appelant décide).
"""
import html as html_lib
import logging
import re
from typing import Any, Dict, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To

from storefront.config import SENDGRID_API_KEY, FROM_EMAIL, FROM_NAME

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

def strip_tags(html: str) -> str:
    """Version texte brut d'un corps HTML (repli pour les clients sans HTML)."""
    text = html_lib.unescape(_TAG_RE.sub(" ", html or ""))
    return _SPACE_RE.sub(" ", text).strip()

def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> Dict[str, Any]:
    if not SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not set, email to %s not sent: %s", to, subject)
        return {"success": False, "error": "Email not configured"}

    message = Mail(
        from_email=Email(FROM_EMAIL, FROM_NAME),
        to_emails=To(to),
        subject=subject,
        html_content=html,
        plain_text_content=text or strip_tags(html),
    )
    try:
        response = SendGridAPIClient(SENDGRID_API_KEY).send(message)
    except Exception as e:
        logger.exception("emails.sender.send_email failed to=%s subject=%s", to, subject)
        return {"success": False, "error": str(e)}

    if response.status_code in (200, 201, 202):
        logger.info("Email sent to %s: %s", to, subject)
        return {"success": True}
    logger.error("SendGrid error %s to=%s body=%s", response.status_code, to, response.body)
    return {"success": False, "error": f"SendGrid status {response.status_code}"}
