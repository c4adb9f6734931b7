"""Shopify webhook routes for customer and order notifications.

Each route verifies the HMAC over the raw body, then hands the body to the
reconciliation engine. Status codes tell Shopify whether to redeliver:
401 bad signature, 400 unusable body, 500 storage failure (retry later).
"""

from fastapi import APIRouter, Request, Header, Depends
from fastapi.responses import JSONResponse
import get_env_values
from src.exceptions import AuthenticationError, ValidationError, StorageError
from src.models.sync_log import SyncKind
from src.reconciliation.engine import ReconciliationEngine
from src.reconciliation.signature import verify_webhook_request
from src.routers.dependencies import get_reconciliation_engine
import logging
import traceback


router = APIRouter(prefix="/webhooks")


async def _handle_notification(request: Request, hmac_header, reconcile, kind: str, label: str):
    raw_body = await request.body()
    logging.info(f"Webhook received - {kind}")
    try:
        verify_webhook_request(
            raw_body,
            hmac_header,
            get_env_values.WEBHOOK_SECRET,
            require_signature=get_env_values.REQUIRE_WEBHOOK_SIGNATURE,
        )
        result = await reconcile(kind, raw_body)
    except AuthenticationError:
        return JSONResponse(content={"error": "HMAC verification failed"}, status_code=401)
    except ValidationError as e:
        logging.error(f"400: {e} (keys: {e.received_keys})")
        return JSONResponse(content={"error": str(e), "receivedData": e.received_keys}, status_code=400)
    except StorageError as e:
        logging.error(f"Database error processing webhook {kind}: {e}")
        return JSONResponse(
            content={"error": "Internal error processing webhook", "details": str(e)},
            status_code=500
        )
    except Exception as e:
        logging.error(f"Error processing webhook {kind}: {e}")
        logging.error(traceback.format_exc())
        return JSONResponse(
            content={"error": "Internal error processing webhook", "details": str(e)},
            status_code=500
        )

    action = "created" if result.created else "updated"
    return JSONResponse(
        content={
            "success": True,
            "message": f"{label} {action} via webhook",
            "source": "Shopify Native Webhook",
            result.entity: result.summary,
        },
        status_code=200
    )


@router.post("/customers/create")
async def customers_create(
        request: Request,
        x_shopify_hmac_sha256: str = Header(None),
        engine: ReconciliationEngine = Depends(get_reconciliation_engine)):
    return await _handle_notification(
        request, x_shopify_hmac_sha256, engine.reconcile_customer_notification, SyncKind.CUSTOMER_CREATE, "Customer"
    )


@router.post("/customers/update")
async def customers_update(
        request: Request,
        x_shopify_hmac_sha256: str = Header(None),
        engine: ReconciliationEngine = Depends(get_reconciliation_engine)):
    return await _handle_notification(
        request, x_shopify_hmac_sha256, engine.reconcile_customer_notification, SyncKind.CUSTOMER_UPDATE, "Customer"
    )


@router.post("/orders/create")
async def orders_create(
        request: Request,
        x_shopify_hmac_sha256: str = Header(None),
        engine: ReconciliationEngine = Depends(get_reconciliation_engine)):
    return await _handle_notification(
        request, x_shopify_hmac_sha256, engine.reconcile_order_notification, SyncKind.ORDER_CREATE, "Order"
    )


@router.post("/orders/update")
async def orders_update(
        request: Request,
        x_shopify_hmac_sha256: str = Header(None),
        engine: ReconciliationEngine = Depends(get_reconciliation_engine)):
    return await _handle_notification(
        request, x_shopify_hmac_sha256, engine.reconcile_order_notification, SyncKind.ORDER_UPDATE, "Order"
    )


webhooks_router = router
