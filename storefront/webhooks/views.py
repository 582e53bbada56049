import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.payments import stripe_client
from storefront.webhooks import service as webhooks_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/stripe", tags=["Stripe Webhook"])

# module storefront.webhooks.views
@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(request: Request):
    """
    Webhook Stripe.
    - Signature: vérifiée avant tout traitement (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - Dispatch: webhooks_service.reconcile(event) exécuté hors boucle (appels bloquants)
    - Réponses: 200 {"received": true}; 400 {"error"} si signature invalide;
      500 si le traitement échoue (Stripe relivrera l'événement)
    """
    try:
        event = await stripe_client.parse_event(request)
    except stripe_client.WebhookSignatureError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        return JSONResponse({"error": "Webhook signature verification failed."}, status_code=400)

    try:
        await run_in_threadpool(webhooks_service.reconcile, event)
    except Exception:
        logger.exception("Erreur stripe_webhook type=%s id=%s", event.get("type"), event.get("id"))
        return JSONResponse({"error": "Webhook handler failed"}, status_code=500)
    return {"received": True}
