"""Admin routes for the customer cache: manual bulk sync, its status, and stats recalculation."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from src.database.database import DatabaseManager, get_db_manager
from src.exceptions import StorageError, ShopifyAPIError
from src.reconciliation.engine import ReconciliationEngine
from src.routers.dependencies import get_reconciliation_engine, get_shopify_client
from src.shopify_client import ShopifyAdminClient
from sqlalchemy.exc import SQLAlchemyError
import logging

router = APIRouter(prefix="/admin/customers")


def _isoformat(value):
    return value.isoformat() if value is not None else None


def sync_log_to_dict(sync_log):
    if sync_log is None:
        return None
    return {
        "id": sync_log.id,
        "syncType": sync_log.sync_type,
        "status": sync_log.status,
        "recordsTotal": sync_log.records_total,
        "recordsAdded": sync_log.records_added,
        "recordsUpdated": sync_log.records_updated,
        "recordsSkipped": sync_log.records_skipped,
        "errorMessage": sync_log.error_message,
        "startedAt": _isoformat(sync_log.started_at),
        "completedAt": _isoformat(sync_log.completed_at),
        "duration": sync_log.duration,
    }


@router.post("/sync", response_model=dict)
async def sync_customers(
        engine: ReconciliationEngine = Depends(get_reconciliation_engine),
        shopify_client: ShopifyAdminClient = Depends(get_shopify_client)):
    """
    Pull every customer from Shopify's REST API and reconcile each one through
    the same pipeline as the webhooks. One manual-bulk sync record covers the run.
    """
    logging.info("Starting customer sync...")
    try:
        summary = await engine.run_bulk_customer_sync(shopify_client)
    except ShopifyAPIError as e:
        return JSONResponse(content={"error": "Customer sync failed", "details": str(e)}, status_code=502)
    except StorageError as e:
        return JSONResponse(content={"error": "Customer sync failed", "details": str(e)}, status_code=500)
    sync_log_id = summary.pop("syncLogId")
    return {
        "success": True,
        "message": "Customer sync completed successfully",
        "summary": summary,
        "syncLogId": sync_log_id,
    }


@router.get("/sync", response_model=dict)
async def sync_status(db_manager: DatabaseManager = Depends(get_db_manager)):
    """Last sync record plus cache counters, for the admin "last sync" widget."""
    try:
        last_sync = await db_manager.latest_sync_log()
        total_customers = await db_manager.count_customers()
        active_customers = await db_manager.count_customers(state="enabled")
    except SQLAlchemyError as db_exc:
        logging.error(f"Database error: {db_exc}")
        return JSONResponse(content={"error": "Database error", "details": str(db_exc)}, status_code=500)
    return {
        "success": True,
        "lastSync": sync_log_to_dict(last_sync),
        "stats": {
            "totalCustomers": total_customers,
            "activeCustomers": active_customers,
            "lastSyncAt": _isoformat(last_sync.completed_at) if last_sync else None,
        },
    }


@router.post("/recalculate-stats", response_model=dict)
async def recalculate_stats(engine: ReconciliationEngine = Depends(get_reconciliation_engine)):
    """Recompute orders count / total spent / average order value for every stored customer."""
    logging.info("Starting customer stats recalculation...")
    try:
        stats = await engine.recalculate_all_stats()
    except StorageError as e:
        return JSONResponse(content={"error": "Error recalculating stats", "details": str(e)}, status_code=500)
    return {
        "success": True,
        "message": "Customer stats recalculated successfully",
        "stats": stats,
    }


customer_sync_router = router
