import logging
from typing import Any, Dict, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from storefront.utils.security import require_user
from storefront.utils.rate_limit import optional_rate_limit
from storefront.studio import service as studio_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/studio", tags=["Studio API"])


class StudioCheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_id: Literal["price_monthly", "price_yearly"] = Field(alias="priceId")


# module storefront.studio.views
@router.post("/subscription/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def studio_checkout(body: StudioCheckoutRequest, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """
    Démarre l'adhésion Studio Systems pour l'utilisateur authentifié.
    - Entrée JSON: {"priceId": "price_monthly" | "price_yearly"}
    - Réponse: {"url": <session Checkout Stripe>}
    """
    try:
        return studio_service.start_checkout(user, body.price_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur studio_checkout")
        raise HTTPException(status_code=500, detail=f"Failed to create checkout session: {e}")

@router.get("/subscription")
def studio_subscription(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    return studio_service.get_status(user.get("id"))
