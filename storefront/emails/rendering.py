from datetime import datetime, timezone
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from storefront.config import EMAIL_TEMPLATES_DIR, BASE_URL

_CURRENCY_SYMBOLS = {"usd": "$", "eur": "€", "gbp": "£"}

env = Environment(
    loader=FileSystemLoader(str(EMAIL_TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

# module storefront.emails.rendering
def format_price(cents: int, currency: str = "usd") -> str:
    """
    Montant en unités mineures -> chaîne affichable.
    - 2500, "usd" -> "$25.00"; devise inconnue -> "25.00 CHF"
    """
    amount = f"{(cents or 0) / 100:,.2f}"
    symbol = _CURRENCY_SYMBOLS.get((currency or "").lower())
    if symbol:
        return f"{symbol}{amount}"
    return f"{amount} {(currency or '').upper()}".strip()

def thank_you_url(product_slug: str) -> str:
    return f"{BASE_URL}/checkout/thank-you?product={product_slug}"

def render(template_name: str, **context: Any) -> str:
    context.setdefault("year", datetime.now(timezone.utc).year)
    return env.get_template(template_name).render(**context)
