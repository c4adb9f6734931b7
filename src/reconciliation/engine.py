"""Reconciliation of Shopify customer/order notifications into the local cache.

One call per inbound notification, processed end to end inside the request.
Nothing is retried here: storage failures are surfaced so the webhook
returns 500 and Shopify redelivers. Every step is idempotent and tolerant of
reordering, which is what makes that redelivery safe.
"""

import logging
from sqlalchemy.exc import SQLAlchemyError
from get_env_values import DEFAULT_CURRENCY
from src.exceptions import ValidationError, StorageError
from src.models.base_model import SyncCounts, ReconcileResult
from src.models.sync_log import SyncKind
from src.reconciliation.aggregates import recompute_customer_stats, stats_differ
from src.reconciliation.audit import SyncAuditLog
from src.reconciliation.linker import IdentityLinker
from src.reconciliation.merge import merge_customer, merge_order
from src.reconciliation.normalizer import parse_notification, normalize_customer, normalize_order


def _money(value):
    return float(value) if value is not None else None


def customer_summary(customer) -> dict:
    return {
        "id": customer.id,
        "shopifyId": customer.shopify_id,
        "name": f"{customer.first_name or ''} {customer.last_name or ''}".strip(),
        "email": customer.email,
        "ordersCount": customer.orders_count,
        "totalSpent": _money(customer.total_spent),
    }


def order_summary(order, customer_updated: bool) -> dict:
    return {
        "id": order.id,
        "shopifyId": order.shopify_id,
        "name": order.name,
        "orderNumber": order.order_number,
        "totalPrice": _money(order.total_price),
        "financialStatus": order.financial_status,
        "fulfillmentStatus": order.fulfillment_status,
        "customerUpdated": customer_updated,
    }


class ReconciliationEngine:
    """Sole writer of the customers and orders tables."""

    def __init__(self, db_manager, default_currency: str = None):
        self.db_manager = db_manager
        self.default_currency = default_currency or DEFAULT_CURRENCY
        self.audit = SyncAuditLog(db_manager)
        self.linker = IdentityLinker(db_manager)

    # --- Notification entry points ---

    async def reconcile_customer_notification(self, kind: str, raw_body: bytes) -> ReconcileResult:
        async def work():
            draft = normalize_customer(parse_notification(raw_body))
            logging.info(f"Customer notification received: Shopify ID={draft.shopify_id}, Type={kind}")
            customer, created = await self.apply_customer(draft)
            counts = SyncCounts(seen=1, added=int(created), updated=int(not created))
            return ReconcileResult(entity="customer", created=created, summary=customer_summary(customer)), counts

        return await self._run(kind, work)

    async def reconcile_order_notification(self, kind: str, raw_body: bytes) -> ReconcileResult:
        async def work():
            draft = normalize_order(parse_notification(raw_body))
            logging.info(f"Order notification received: Shopify ID={draft.shopify_id}, Name={draft.name}, Status={draft.financial_status}, Type={kind}")
            order, created, customer_updated = await self.apply_order(draft)
            counts = SyncCounts(seen=1, added=int(created), updated=int(not created))
            return ReconcileResult(entity="order", created=created, summary=order_summary(order, customer_updated)), counts

        return await self._run(kind, work)

    async def _run(self, kind, work):
        try:
            token = await self.audit.begin(kind)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not open sync record: {e}") from e
        try:
            result, counts = await work()
            await self.audit.complete(token, counts)
        except SQLAlchemyError as e:
            error = StorageError(str(e))
            await self._record_failure(token, error)
            raise error from e
        except Exception as e:
            await self._record_failure(token, e)
            raise
        return result

    async def _record_failure(self, token, error, counts=None):
        try:
            await self.audit.fail(token, error, counts)
        except SQLAlchemyError as log_error:
            logging.error(f"Error recording failed sync {token}: {log_error}")

    # --- Pipeline steps ---

    async def apply_customer(self, draft):
        """Recompute stats, merge over the stored row and upsert. Returns (customer, created)."""
        existing = await self.db_manager.get_customer(draft.shopify_id)
        stats = await recompute_customer_stats(self.db_manager, draft.shopify_id)
        if draft.reported_orders_count != stats.orders_count or draft.reported_total_spent != stats.total_spent:
            logging.info(f"Customer {draft.shopify_id}: Shopify reported orders={draft.reported_orders_count}, total_spent={draft.reported_total_spent}, average={draft.reported_average_order_value}; keeping recomputed values")
        values = merge_customer(draft, existing, stats, self.default_currency)
        customer = await self.db_manager.upsert_customer(values)
        return customer, existing is None

    async def apply_order(self, draft):
        """
        Link, merge and upsert the order, then bring the referenced customer's
        stats up to date. The order is stored first so the recomputation
        includes it. Returns (order, created, customer_updated).
        """
        if draft.customer is not None and draft.customer.email:
            await self.linker.link(draft.customer.email, draft.customer.shopify_id)

        existing = await self.db_manager.get_order(draft.shopify_id)
        values = merge_order(draft, existing, self.default_currency)
        order = await self.db_manager.upsert_order(values)

        customer_updated = False
        if draft.customer is not None:
            await self.apply_customer(draft.customer)
            customer_updated = True
        elif order.customer_id:
            customer_updated = await self.refresh_customer_stats(order.customer_id)

        previous_customer_id = existing.customer_id if existing is not None else None
        if previous_customer_id and previous_customer_id != order.customer_id:
            logging.info(f"Order {order.shopify_id} moved from customer {previous_customer_id} to {order.customer_id}")
            await self.refresh_customer_stats(previous_customer_id)

        return order, existing is None, customer_updated

    async def refresh_customer_stats(self, customer_id: str) -> bool:
        """Rewrite only the derived stats of a stored customer. False if it isn't stored."""
        stats = await recompute_customer_stats(self.db_manager, customer_id)
        return await self.db_manager.update_customer_stats(customer_id, stats)

    # --- Admin operations ---

    async def recalculate_all_stats(self) -> dict:
        """Recompute every stored customer's stats, writing only the ones that drifted."""
        updated = unchanged = 0
        try:
            customers = await self.db_manager.list_customers()
            for customer in customers:
                stats = await recompute_customer_stats(self.db_manager, customer.shopify_id)
                if stats_differ(customer, stats):
                    await self.db_manager.update_customer_stats(customer.shopify_id, stats)
                    logging.info(f"Customer stats corrected: Shopify ID={customer.shopify_id}, Before=({customer.orders_count}, {customer.total_spent}), After=({stats.orders_count}, {stats.total_spent})")
                    updated += 1
                else:
                    unchanged += 1
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e
        logging.info(f"Stats recalculation finished: total={len(customers)}, updated={updated}, unchanged={unchanged}")
        return {"totalCustomers": len(customers), "updated": updated, "unchanged": unchanged}

    async def run_bulk_customer_sync(self, shopify_client) -> dict:
        """
        Page through Shopify's customer list and feed every record through the
        same normalize/recompute/merge/upsert path as the webhooks. One
        manual-bulk sync record covers the whole run; bad records are skipped.
        """
        try:
            token = await self.audit.begin(SyncKind.MANUAL_BULK)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not open sync record: {e}") from e
        counts = SyncCounts()
        try:
            async for payload in shopify_client.iter_customers():
                counts.seen += 1
                try:
                    _, created = await self.apply_customer(normalize_customer(payload))
                except (ValidationError, SQLAlchemyError) as e:
                    logging.error(f"Error processing customer {payload.get('id')}: {e}")
                    counts.skipped += 1
                    continue
                if created:
                    counts.added += 1
                else:
                    counts.updated += 1
            await self.audit.complete(token, counts)
        except SQLAlchemyError as e:
            error = StorageError(str(e))
            await self._record_failure(token, error, counts)
            raise error from e
        except Exception as e:
            await self._record_failure(token, e, counts)
            raise
        sync_log = await self.db_manager.get_sync_log(token)
        logging.info(f"Customer sync finished: {counts.added} added, {counts.updated} updated, {counts.skipped} skipped")
        return {
            "total": counts.seen,
            "added": counts.added,
            "updated": counts.updated,
            "skipped": counts.skipped,
            "duration": f"{round(sync_log.duration or 0)}s",
            "syncLogId": token,
        }
