"""
Produits des deux catalogues (union étiquetée par ProductSource).
- DashboardProduct: produit géré dans l'admin, synchronisé avec Stripe (Product/Price)
- NotionProduct: contenu externe; prix et livraison viennent de la configuration statique
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ProductSource(str, Enum):
    DASHBOARD = "dashboard"
    NOTION = "notion"


class ProductType(str, Enum):
    ONE_TIME = "one_time"
    SUBSCRIPTION = "subscription"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ProductType"]:
        """Type connu (one_time par défaut si absent), None pour une valeur inattendue en base."""
        try:
            return cls(value or cls.ONE_TIME.value)
        except ValueError:
            return None


@dataclass(frozen=True)
class DashboardProduct:
    id: int
    name: str
    slug: str
    price_in_cents: int
    product_type: Optional[ProductType]
    stripe_price_id: Optional[str] = None
    stripe_yearly_price_id: Optional[str] = None
    delivery_type: Optional[str] = None
    download_url: Optional[str] = None
    access_instructions: Optional[str] = None
    cover_image_url: Optional[str] = None

    @property
    def is_subscription(self) -> bool:
        return self.product_type == ProductType.SUBSCRIPTION

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DashboardProduct":
        product_type = ProductType.parse(row.get("product_type"))
        if product_type is None:
            logger.warning("dashboard product %s has unknown product_type %r", row.get("id"), row.get("product_type"))
        return cls(
            id=int(row["id"]),
            name=row.get("name") or "",
            slug=row.get("slug") or "",
            price_in_cents=int(row.get("price_in_cents") or 0),
            product_type=product_type,
            stripe_price_id=row.get("stripe_price_id") or None,
            stripe_yearly_price_id=row.get("stripe_yearly_price_id") or None,
            delivery_type=row.get("delivery_type") or None,
            download_url=row.get("download_url") or None,
            access_instructions=row.get("access_instructions") or None,
            cover_image_url=row.get("cover_image_url") or None,
        )


@dataclass(frozen=True)
class NotionProduct:
    id: int
    slug: str
    title: str
    cover_image_url: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "NotionProduct":
        return cls(
            id=int(row["id"]),
            slug=row.get("slug") or "",
            title=row.get("title") or "",
            cover_image_url=row.get("cover_image_url") or None,
        )


CatalogProduct = Union[DashboardProduct, NotionProduct]
