import logging
from sqlalchemy.exc import SQLAlchemyError
from src.exceptions import LinkingError


class IdentityLinker:
    """
    Attach a Shopify customer ID to a locally registered account the first
    time an order lets us correlate the two by e-mail. One-way and one-shot:
    an account that already carries a Shopify customer ID is never relinked.
    """
    def __init__(self, db_manager):
        self.db_manager = db_manager

    async def _link(self, email: str, shopify_customer_id: str) -> bool:
        try:
            user = await self.db_manager.get_user_by_email(email)
            if user is None:
                return False
            if user.shopify_customer_id:
                if user.shopify_customer_id != str(shopify_customer_id):
                    logging.info(f"Account {user.id} already linked to customer {user.shopify_customer_id}; ignoring customer {shopify_customer_id}")
                return False
            linked = await self.db_manager.link_user_to_customer(user.id, shopify_customer_id)
        except SQLAlchemyError as e:
            raise LinkingError(f"Could not link customer {shopify_customer_id} to a local account: {e}") from e
        if linked:
            logging.info(f"shopify_customer_id linked to local account: User ID={user.id}, Shopify Customer ID={shopify_customer_id}")
        return linked

    async def link(self, email: str, shopify_customer_id: str) -> bool:
        """Best effort. Returns True only when this call created the link; never raises on storage errors."""
        if not email or not shopify_customer_id:
            return False
        try:
            return await self._link(email, shopify_customer_id)
        except LinkingError as e:
            logging.error(f"Error linking shopify_customer_id to local account: {e}")
            return False
