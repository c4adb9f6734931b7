import os
from operator import itemgetter
from dotenv import load_dotenv


load_dotenv()


SHOPIFY_STORE_DOMAIN, SHOPIFY_ADMIN_API_TOKEN, SHOPIFY_API_VERSION, DEFAULT_CURRENCY = itemgetter(
    "SHOPIFY_STORE_DOMAIN", "SHOPIFY_ADMIN_API_TOKEN", "SHOPIFY_API_VERSION", "DEFAULT_CURRENCY"
)({
    "SHOPIFY_STORE_DOMAIN": "",
    "SHOPIFY_ADMIN_API_TOKEN": "",
    "SHOPIFY_API_VERSION": "2025-04",
    "DEFAULT_CURRENCY": "BRL",
    **os.environ,
})

WEBHOOK_SECRET = os.getenv("SHOPIFY_WEBHOOK_SECRET", "")

# Missing signature headers are tolerated (with a warning) unless this is set.
# Production deployments should turn it on once manual/test callers are gone.
REQUIRE_WEBHOOK_SIGNATURE = os.getenv("REQUIRE_WEBHOOK_SIGNATURE", "false").lower() in ("1", "true", "yes")

DATABASE_URL = os.getenv("DATABASE_URL")
