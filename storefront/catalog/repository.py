"""
Accès aux données des catalogues (tables 'dashboard_products' et 'notion_products').
Lecture seule: simples résolveurs id -> produit, sans cache.
"""
from typing import List, Optional
import logging

import storefront.infra.supabase_client as supabase_client
from .models import DashboardProduct, NotionProduct

logger = logging.getLogger(__name__)

# module storefront.catalog.repository
def _fetch_one(table: str, column: str, value) -> Optional[dict]:
    res = (
        supabase_client.get_service_supabase()
        .table(table)
        .select("*")
        .eq(column, value)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def get_dashboard_product(product_id: int) -> Optional[DashboardProduct]:
    """
    Produit dashboard par id, ou None si introuvable.
    - Les erreurs d'accès (réseau, Supabase) remontent à l'appelant.
    """
    row = _fetch_one("dashboard_products", "id", product_id)
    return DashboardProduct.from_row(row) if row else None

def get_dashboard_products_by_ids(ids: List[int]) -> List[DashboardProduct]:
    """
    Produits dashboard par liste d'ids (upsells). Retourne [] si ids vide ou en cas d'erreur.
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("dashboard_products")
            .select("*")
            .in_("id", [int(i) for i in ids])
            .execute()
        )
        return [DashboardProduct.from_row(r) for r in (res.data or [])]
    except Exception:
        logger.exception("catalog.repository.get_dashboard_products_by_ids failed ids=%s", ids)
        return []

def get_notion_product(product_id: int) -> Optional[NotionProduct]:
    row = _fetch_one("notion_products", "id", product_id)
    return NotionProduct.from_row(row) if row else None

def get_notion_product_by_slug(slug: str) -> Optional[NotionProduct]:
    row = _fetch_one("notion_products", "slug", slug)
    return NotionProduct.from_row(row) if row else None
