from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.catalog.models import ProductSource, ProductType


def cart_item_id(product_id: int, source: ProductSource | str) -> str:
    """Identifiant composite d'une ligne: "{source}-{productId}"."""
    source_value = source.value if isinstance(source, ProductSource) else str(source)
    return f"{source_value}-{product_id}"


class CartProduct(BaseModel):
    """Produit ajouté au panier (sans quantité)."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    product_id: int = Field(alias="productId")
    product_source: ProductSource = Field(alias="productSource")
    slug: str
    name: str
    price_in_cents: int = Field(alias="priceInCents", ge=0)
    cover_image_url: Optional[str] = Field(default=None, alias="coverImageUrl")
    product_type: ProductType = Field(default=ProductType.ONE_TIME, alias="productType")

    @property
    def id(self) -> str:
        return cart_item_id(self.product_id, self.product_source)


class CartItem(CartProduct):
    """Ligne du panier: invariant quantity >= 1."""
    quantity: int = Field(ge=1)

    def to_dict(self):
        return {"id": self.id, **self.model_dump(by_alias=True, mode="json")}
