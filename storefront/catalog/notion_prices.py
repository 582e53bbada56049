"""
Configuration statique des produits Notion.

Source de vérité unique pour savoir si une entrée du catalogue Notion est achetable
(et à quel prix) ou distribuée gratuitement. L'entrée Notion elle-même ne porte aucun prix.
Utiliser des price IDs Stripe de TEST en développement, LIVE en production.
"""
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class NotionPriceConfig:
    stripe_price_id: str
    price_in_cents: int
    delivery_type: str = "email"
    download_url: Optional[str] = None
    access_instructions: Optional[str] = None


@dataclass(frozen=True)
class FreeNotionConfig:
    download_url: Optional[str] = None
    delivery_type: str = "email"
    access_instructions: Optional[str] = None
    price_in_cents: int = 0


_NOTION = "https://www.notion.so/kerribridgman/"
_VIEW = "?v=1ecb2e958320800c988f000cf532cc00&source=copy_link"

# Produits payants: checkout Stripe requis
NOTION_PRODUCT_PRICES: Dict[str, NotionPriceConfig] = {
    "the-vision-reset-journal": NotionPriceConfig(
        stripe_price_id="price_1SZg5Z2MEDjQyNJErW7wQqlD",
        price_in_cents=700,
        download_url=_NOTION + "Welcome-to-the-Vision-Reset-Journal-1ecb2e95832080a9a6d4eb96d9850439" + _VIEW,
    ),
    "inventory-asset-tracker-template": NotionPriceConfig(
        stripe_price_id="price_1SZg5Z2MEDjQyNJEr3vHmslC",
        price_in_cents=2700,
        download_url=_NOTION + "Welcome-to-the-Inventory-Asset-Tracker-269b2e95832080a58dc3e0f6ecce8fa3" + _VIEW,
    ),
    "consultant-success-package": NotionPriceConfig(
        stripe_price_id="price_1SZg5a2MEDjQyNJEphrPMqSJ",
        price_in_cents=4700,
        download_url=_NOTION + "Welcome-to-the-Consultant-Checklist-1ecb2e95832080e2b88ce767ad294df3" + _VIEW,
    ),
    "fashion-business-sos-workflow-starter-kit": NotionPriceConfig(
        stripe_price_id="price_1SZg5a2MEDjQyNJE8yuotCGe",
        price_in_cents=4700,
        download_url=_NOTION + "Welcome-to-Fashion-Business-SOS-Workflow-Starter-Kit-1ecb2e95832080d2840df04df967a8a2" + _VIEW,
    ),
}

# Produits gratuits (lead magnets): livraison par email uniquement
FREE_NOTION_PRODUCTS: Dict[str, FreeNotionConfig] = {
    "free-notion-template-digital-fabric-swatch-library": FreeNotionConfig(
        download_url=_NOTION + "Digital-Fabric-Swatch-Library-1ecb2e95832080078725fb94f0dd2b7e" + _VIEW,
    ),
    "free-notion-production-calendar-checklist": FreeNotionConfig(
        download_url=_NOTION + "Production-Calendar-1feb2e95832080c5b5b9d8f5299b6f7f" + _VIEW,
    ),
    "free-weekly-fashion-workflow-planner-beginner-friendly-notion-template": FreeNotionConfig(
        download_url=_NOTION + "Weekly-Fashion-Workflow-Planner-246b2e95832080b2984aea3809670e90" + _VIEW,
    ),
    "free-fashion-pricing-calculator": FreeNotionConfig(
        download_url=_NOTION + "Fashion-Pricing-Calculator-246b2e9583208031b282ec0ea2003ddc" + _VIEW,
    ),
    "free-the-fashion-biz-flow-map-one-page-notion-roadmap": FreeNotionConfig(
        download_url=_NOTION + "Fashion-Biz-Flow-Map-24ab2e95832080f9b265dfc3ae842da3" + _VIEW,
    ),
}


def get_notion_price_config(slug: str) -> Optional[NotionPriceConfig]:
    return NOTION_PRODUCT_PRICES.get(slug)

def get_free_notion_config(slug: str) -> Optional[FreeNotionConfig]:
    return FREE_NOTION_PRODUCTS.get(slug)

def has_stripe_checkout(slug: str) -> bool:
    return slug in NOTION_PRODUCT_PRICES

def is_free_notion_product(slug: str) -> bool:
    return slug in FREE_NOTION_PRODUCTS

def get_notion_delivery_url(slug: str) -> Optional[str]:
    """URL de livraison: configuration payante d'abord, puis gratuite."""
    paid = NOTION_PRODUCT_PRICES.get(slug)
    if paid and paid.download_url:
        return paid.download_url
    free = FREE_NOTION_PRODUCTS.get(slug)
    return free.download_url if free else None
