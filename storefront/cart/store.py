"""
Store du panier: réducteur pur + objet propriétaire de l'état et du stockage.

Chaque action est une transition atomique (state, action) -> nouvel état. Le store persiste
la liste complète des lignes après chaque mutation et s'hydrate depuis le stockage à la création.
"""
from dataclasses import dataclass, replace
from typing import Tuple, Union

from storefront.catalog.models import ProductSource
from .models import CartItem, CartProduct, cart_item_id
from .storage import CartStorage


@dataclass(frozen=True)
class CartState:
    items: Tuple[CartItem, ...] = ()
    is_open: bool = False


@dataclass(frozen=True)
class AddItem:
    product: CartProduct
    quantity: int = 1


@dataclass(frozen=True)
class RemoveItem:
    item_id: str


@dataclass(frozen=True)
class UpdateQuantity:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class SetOpen:
    is_open: bool


@dataclass(frozen=True)
class Hydrate:
    items: Tuple[CartItem, ...]


CartAction = Union[AddItem, RemoveItem, UpdateQuantity, ClearCart, SetOpen, Hydrate]


# module storefront.cart.store
def _add(state: CartState, action: AddItem) -> CartState:
    if action.quantity < 1:
        return state
    product = action.product
    items = list(state.items)
    for idx, item in enumerate(items):
        if item.id == product.id:
            items[idx] = item.model_copy(update={"quantity": item.quantity + action.quantity})
            break
    else:
        items.append(CartItem(**product.model_dump(exclude={"quantity"}), quantity=action.quantity))
    return CartState(items=tuple(items), is_open=True)

def cart_reducer(state: CartState, action: CartAction) -> CartState:
    """
    Réducteur pur du panier.
    - AddItem: fusionne par id composite (somme des quantités) et ouvre le panier
    - UpdateQuantity: quantité <= 0 retire la ligne
    """
    if isinstance(action, AddItem):
        return _add(state, action)
    if isinstance(action, RemoveItem):
        return replace(state, items=tuple(i for i in state.items if i.id != action.item_id))
    if isinstance(action, UpdateQuantity):
        if action.quantity <= 0:
            return cart_reducer(state, RemoveItem(action.item_id))
        return replace(state, items=tuple(
            i.model_copy(update={"quantity": action.quantity}) if i.id == action.item_id else i
            for i in state.items
        ))
    if isinstance(action, ClearCart):
        return replace(state, items=())
    if isinstance(action, SetOpen):
        return replace(state, is_open=action.is_open)
    if isinstance(action, Hydrate):
        return replace(state, items=tuple(action.items))
    raise TypeError(f"Unknown cart action: {action!r}")


class CartStore:
    """Panier possédé explicitement par l'appelant (injecté, jamais global)."""

    def __init__(self, storage: CartStorage):
        self._storage = storage
        self._state = cart_reducer(CartState(), Hydrate(tuple(storage.load())))

    def dispatch(self, action: CartAction) -> CartState:
        previous = self._state
        self._state = cart_reducer(previous, action)
        if isinstance(action, ClearCart):
            self._storage.clear()
        elif self._state.items != previous.items:
            self._storage.save(list(self._state.items))
        return self._state

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return self._state.items

    @property
    def is_open(self) -> bool:
        return self._state.is_open

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self._state.items)

    @property
    def total_price(self) -> int:
        return sum(i.price_in_cents * i.quantity for i in self._state.items)

    def add_item(self, product: CartProduct, quantity: int = 1) -> CartState:
        return self.dispatch(AddItem(product, quantity))

    def remove_item(self, item_id: str) -> CartState:
        return self.dispatch(RemoveItem(item_id))

    def update_quantity(self, item_id: str, quantity: int) -> CartState:
        return self.dispatch(UpdateQuantity(item_id, quantity))

    def clear_cart(self) -> CartState:
        return self.dispatch(ClearCart())

    def open_cart(self) -> CartState:
        return self.dispatch(SetOpen(True))

    def close_cart(self) -> CartState:
        return self.dispatch(SetOpen(False))

    def toggle_cart(self) -> CartState:
        return self.dispatch(SetOpen(not self._state.is_open))

    def is_in_cart(self, product_id: int, source: ProductSource | str) -> bool:
        target = cart_item_id(product_id, source)
        return any(i.id == target for i in self._state.items)

    def get_item_quantity(self, product_id: int, source: ProductSource | str) -> int:
        target = cart_item_id(product_id, source)
        return next((i.quantity for i in self._state.items if i.id == target), 0)

    def snapshot(self) -> dict:
        return {
            "items": [i.to_dict() for i in self._state.items],
            "isOpen": self._state.is_open,
            "totalItems": self.total_items,
            "totalPrice": self.total_price,
        }
