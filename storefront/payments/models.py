from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.catalog.models import CatalogProduct, ProductSource


class CartLineInput(BaseModel):
    """Ligne de panier reçue du client: seuls id, source et quantité sont pris en compte."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    product_source: ProductSource = Field(alias="productSource")
    quantity: int = Field(default=1, ge=1)


class CartCheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartLineInput] = Field(default_factory=list)
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")


class PaymentIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    upsell_ids: List[int] = Field(default_factory=list, alias="upsellIds")


class SubscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    billing_interval: Literal["month", "year"] = Field(default="month", alias="billingInterval")


class NotionCheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    customer_name: Optional[str] = Field(default=None, alias="customerName")


@dataclass(frozen=True)
class ValidatedCartItem:
    """
    Ligne revalidée côté serveur: nom et prix unitaire relus dans le catalogue d'origine,
    jamais repris du payload client.
    """
    id: int
    name: str
    price_in_cents: int
    quantity: int
    slug: str
    source: ProductSource
    product: Optional[CatalogProduct] = field(default=None, compare=False, repr=False)

    @property
    def line_total(self) -> int:
        return self.price_in_cents * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "priceInCents": self.price_in_cents,
            "quantity": self.quantity,
            "slug": self.slug,
            "source": self.source.value,
        }
