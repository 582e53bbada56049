from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from storefront.cart.models import CartProduct
from storefront.cart.storage import SessionCartStorage
from storefront.cart.store import CartStore

router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class AddToCartRequest(CartProduct):
    quantity: int = Field(default=1, ge=1)


class UpdateQuantityRequest(BaseModel):
    quantity: int


def get_cart_store(request: Request) -> CartStore:
    """Panier de la session courante (cookie signé)."""
    return CartStore(SessionCartStorage(request.session))

# module storefront.cart.views
@router.get("")
def read_cart(cart: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    return cart.snapshot()

@router.post("/items")
def add_to_cart(body: AddToCartRequest, cart: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    """
    Ajoute un produit au panier de session.
    - Même (productId, productSource): quantités additionnées sur une seule ligne
    - Ouvre le panier (isOpen = true)
    """
    product = CartProduct(**body.model_dump(exclude={"quantity"}))
    cart.add_item(product, body.quantity)
    return cart.snapshot()

@router.patch("/items/{item_id}")
def update_cart_item(item_id: str, body: UpdateQuantityRequest, cart: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    """Fixe la quantité d'une ligne; quantité <= 0 retire la ligne."""
    cart.update_quantity(item_id, body.quantity)
    return cart.snapshot()

@router.delete("/items/{item_id}")
def remove_cart_item(item_id: str, cart: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    cart.remove_item(item_id)
    return cart.snapshot()

@router.delete("")
def clear_cart(cart: CartStore = Depends(get_cart_store)) -> Dict[str, Any]:
    cart.clear_cart()
    return cart.snapshot()
