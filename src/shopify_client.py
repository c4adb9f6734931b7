import logging
import ssl
import aiohttp
import certifi
from src.exceptions import ShopifyAPIError


class ShopifyAdminClient:
    """
    Minimal Shopify Admin REST client for the manual customer sync.
    The REST customer endpoint returns PII that the GraphQL API withholds.
    """
    def __init__(self, store_domain: str, access_token: str, api_version: str, page_size: int = 250):
        self.store_domain = store_domain
        self.access_token = access_token
        self.api_version = api_version
        self.page_size = page_size

    def _url(self, resource: str) -> str:
        return f"https://{self.store_domain}/admin/api/{self.api_version}/{resource}.json"

    async def iter_customers(self):
        """
        Yield every customer record, following the cursor in the Link header
        (rel="next") until Shopify stops returning one.
        """
        if not self.store_domain or not self.access_token:
            raise ShopifyAPIError("Shopify configuration incomplete")
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json"
        }
        url = self._url("customers")
        params = {"limit": self.page_size}
        page = 0
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        async with aiohttp.ClientSession(headers=headers) as client:
            while url:
                page += 1
                try:
                    async with client.get(url, params=params, ssl=ssl_context) as response:
                        if response.status != 200:
                            text = await response.text()
                            raise ShopifyAPIError(f"Shopify REST API Error: {response.status} - {text}")
                        data = await response.json()
                        next_link = response.links.get("next")
                except aiohttp.ClientError as e:
                    raise ShopifyAPIError(f"Shopify REST API request failed: {e}") from e

                customers = data.get("customers") if isinstance(data, dict) else None
                if not isinstance(customers, list):
                    raise ShopifyAPIError("Invalid response format from Shopify API")
                logging.info(f"Fetched customers page {page}: {len(customers)} records")
                for customer in customers:
                    yield customer

                # The next URL already carries limit and page_info
                url = str(next_link["url"]) if next_link else None
                params = None
