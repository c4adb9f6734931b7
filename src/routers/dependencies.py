from fastapi import Depends
import get_env_values
from src.database.database import DatabaseManager, get_db_manager
from src.reconciliation.engine import ReconciliationEngine
from src.shopify_client import ShopifyAdminClient


def get_reconciliation_engine(db_manager: DatabaseManager = Depends(get_db_manager)) -> ReconciliationEngine:
    return ReconciliationEngine(db_manager, default_currency=get_env_values.DEFAULT_CURRENCY)


def get_shopify_client() -> ShopifyAdminClient:
    return ShopifyAdminClient(
        get_env_values.SHOPIFY_STORE_DOMAIN,
        get_env_values.SHOPIFY_ADMIN_API_TOKEN,
        get_env_values.SHOPIFY_API_VERSION,
    )
