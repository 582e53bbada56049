"""
Sérialisation/désérialisation des métadonnées Stripe d'un panier.

Stripe limite les métadonnées à des paires clé/valeur plates; chaque valeur est bornée à
METADATA_VALUE_LIMIT caractères. Les lignes du panier sont encodées en chaînes jointes par
des virgules:
- productIds: "dashboard:12,notion:5"
- quantities: "2,1"
- lineItems:  "Product A x2, Journal x1" (lisible, tronqué)
productIds et quantities ne sont jamais coupés au milieu d'un segment (clé "truncated").
"""
from typing import Dict, List, NamedTuple, Optional, Sequence

METADATA_VALUE_LIMIT = 500
CART_CHECKOUT_TYPE = "cart_checkout"
NOTION_PRODUCT_SOURCE = "notion_product"
TRUNCATED_KEY = "truncated"


class CartLineRef(NamedTuple):
    source: str
    product_id: int
    quantity: int


# module storefront.payments.metadata
def clip(value: Optional[str], limit: int = METADATA_VALUE_LIMIT) -> str:
    return (value or "")[:limit]

def describe_line_items(lines: Sequence) -> str:
    """'{name} x{qty}' joints par ', ' (tronqué à METADATA_VALUE_LIMIT)."""
    return clip(", ".join(f"{line.name} x{line.quantity}" for line in lines))

def _whole_segments(parts: Sequence[str], limit: int = METADATA_VALUE_LIMIT) -> int:
    """Nombre de segments que ",".join(parts) peut contenir en entier sous la limite."""
    size = 0
    for idx, part in enumerate(parts):
        size += len(part) + (1 if idx else 0)
        if size > limit:
            return idx
    return len(parts)

def make_cart_metadata(*, customer_email: str, customer_name: Optional[str], lines: Sequence) -> Dict[str, str]:
    """
    Métadonnées du PaymentIntent d'un panier.
    - lines: éléments validés exposant source, id, name, quantity
    - productIds/quantities coupés sur un séparateur, jamais au milieu d'un segment;
      mêmes lignes gardées dans les deux listes, et "truncated" = "true" si des lignes manquent
    """
    refs = [f"{getattr(line.source, 'value', line.source)}:{line.id}" for line in lines]
    quantities = [str(line.quantity) for line in lines]
    kept = min(_whole_segments(refs), _whole_segments(quantities))
    metadata = {
        "type": CART_CHECKOUT_TYPE,
        "customerEmail": clip(customer_email),
        "customerName": clip(customer_name),
        "itemCount": str(len(lines)),
        "productIds": ",".join(refs[:kept]),
        "quantities": ",".join(quantities[:kept]),
        "lineItems": describe_line_items(lines),
    }
    if kept < len(lines):
        metadata[TRUNCATED_KEY] = "true"
    return metadata

def is_truncated(metadata: Dict[str, str]) -> bool:
    return (metadata.get(TRUNCATED_KEY) or "").lower() == "true"

def parse_cart_lines(metadata: Dict[str, str]) -> List[CartLineRef]:
    """
    Relit productIds/quantities depuis les métadonnées d'un PaymentIntent de panier.
    - Segment illisible ignoré
    - quantities absent: quantité 1; présent mais plus court: ligne ignorée
    """
    ids = [p for p in (metadata.get("productIds") or "").split(",") if p]
    raw_qtys = metadata.get("quantities") or ""
    qtys = raw_qtys.split(",") if raw_qtys else []
    lines: List[CartLineRef] = []
    for idx, ref in enumerate(ids):
        source, _, raw_id = ref.partition(":")
        if raw_qtys and idx >= len(qtys):
            continue
        try:
            product_id = int(raw_id)
            quantity = int(qtys[idx]) if raw_qtys else 1
        except ValueError:
            continue
        if source and quantity > 0:
            lines.append(CartLineRef(source, product_id, quantity))
    return lines
