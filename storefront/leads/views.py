import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.utils.security import require_admin
from storefront.utils.rate_limit import optional_rate_limit
from storefront.leads import repository as leads_repo
from storefront.leads import service as leads_service
from storefront.leads.models import ClaimFreeProductRequest, WaitlistRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/leads", tags=["Leads API"])

# module storefront.leads.views
@router.post("/claim-free-product", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def claim_free_product(body: ClaimFreeProductRequest) -> Dict[str, Any]:
    """
    Téléchargement gratuit d'un produit Notion (lead magnet).
    - Entrée JSON: {email, name?, productSlug, productName}
    - 400 si l'email est invalide ou si le produit n'a pas de lien de téléchargement configuré
    - Réponse: {success, message, emailSent}
    """
    try:
        return leads_service.claim_free_product(body)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur claim_free_product")
        raise HTTPException(status_code=500, detail=f"Failed to process request: {e}")

@router.post("/waitlist", status_code=201, dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def join_waitlist(body: WaitlistRequest) -> Dict[str, Any]:
    try:
        return leads_service.join_waitlist(body)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur join_waitlist")
        raise HTTPException(status_code=500, detail=f"Failed to join waitlist: {e}")

@router.get("/waitlist")
def list_waitlist(admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    leads = leads_repo.list_leads(source=leads_service.WAITLIST_SOURCE)
    return {"leads": leads, "count": len(leads)}

@router.get("")
def list_leads(source: Optional[str] = None, admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    leads = leads_repo.list_leads(source=source)
    return {"leads": leads, "count": len(leads)}
