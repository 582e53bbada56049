"""
Persistance du panier derrière une petite interface (load/save/clear).

Le chargement ne lève jamais: donnée absente, JSON illisible ou valeur qui n'est pas une
liste donnent un panier vide; une entrée invalide isolée est ignorée.
"""
import json
import logging
from typing import Any, List, MutableMapping

from pydantic import ValidationError

from storefront.config import CART_STORAGE_KEY
from .models import CartItem

logger = logging.getLogger(__name__)

# module storefront.cart.storage
def serialize_items(items: List[CartItem]) -> str:
    return json.dumps([item.model_dump(by_alias=True, mode="json") for item in items])

def deserialize_items(raw: Any) -> List[CartItem]:
    if raw is None:
        return []
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except ValueError:
        logger.warning("cart.storage: malformed cart payload ignored")
        return []
    if not isinstance(data, list):
        return []
    items: List[CartItem] = []
    for entry in data:
        try:
            items.append(CartItem.model_validate(entry))
        except ValidationError:
            logger.warning("cart.storage: invalid cart entry skipped")
    return items


class CartStorage:
    """Interface de stockage durable d'une liste de lignes de panier."""

    def load(self) -> List[CartItem]:
        raise NotImplementedError

    def save(self, items: List[CartItem]) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryCartStorage(CartStorage):
    def __init__(self, raw: Any = None):
        self.raw = raw

    def load(self) -> List[CartItem]:
        return deserialize_items(self.raw)

    def save(self, items: List[CartItem]) -> None:
        self.raw = serialize_items(items)

    def clear(self) -> None:
        self.raw = None


class SessionCartStorage(CartStorage):
    """Panier stocké dans la session cookie signée (starlette SessionMiddleware)."""

    def __init__(self, session: MutableMapping[str, Any], key: str = CART_STORAGE_KEY):
        self.session = session
        self.key = key

    def load(self) -> List[CartItem]:
        return deserialize_items(self.session.get(self.key))

    def save(self, items: List[CartItem]) -> None:
        self.session[self.key] = serialize_items(items)

    def clear(self) -> None:
        self.session.pop(self.key, None)
