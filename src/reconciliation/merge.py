"""Field-by-field merge of a notification draft over the stored row.

The same Shopify entity reaches us through channels with different field
completeness (a full customer webhook, an order's billing-only view, the REST
list API), so an empty incoming value never erases a stored one. When a
notification is older than what is stored (by updated_at) the precedence
flips: stored values win and the stale notification only fills gaps. Each
field therefore converges to its newest non-empty observation whatever the
delivery order.
"""

from decimal import Decimal
from src.utils import is_blank

ZERO = Decimal("0.00")

CUSTOMER_CONTACT_FIELDS = ("email", "first_name", "last_name", "phone", "default_address", "addresses")

CUSTOMER_DETAIL_FIELDS = (
    "currency", "tags", "note", "state", "tax_exempt", "tax_exemptions",
    "accepts_marketing", "accepts_marketing_updated_at", "marketing_opt_in_level",
    "email_marketing_consent", "sms_marketing_consent", "admin_graphql_api_id",
)

CUSTOMER_STAT_FIELDS = ("orders_count", "total_spent", "average_order_value")

ORDER_FIELDS = (
    "order_number", "name", "email", "phone", "customer_id",
    "financial_status", "fulfillment_status", "currency",
    "subtotal_price", "total_tax", "total_discounts", "total_shipping_price", "total_price",
    "current_subtotal_price", "current_total_price",
    "line_items", "shipping_lines", "billing_address", "shipping_address", "fulfillments",
    "tags", "note", "gateway", "test", "cancel_reason",
    "processed_at", "cancelled_at", "closed_at",
)

ORDER_MONEY_FIELDS = (
    "subtotal_price", "total_tax", "total_discounts", "total_shipping_price", "total_price",
    "current_subtotal_price", "current_total_price",
)

ORDER_BLOB_FIELDS = ("line_items", "shipping_lines", "fulfillments")

# Once stored with one of these, an order's total_price no longer changes
TERMINAL_FINANCIAL_STATUSES = frozenset({"paid", "partially_refunded", "refunded", "voided"})


def is_stale(incoming_updated_at, existing) -> bool:
    stored_updated_at = getattr(existing, "updated_at", None) if existing is not None else None
    return stored_updated_at is not None and incoming_updated_at < stored_updated_at


def resolve_field(incoming, stored, stale=False):
    """Newest non-empty value wins; an empty value never erases a present one."""
    if stale:
        return incoming if is_blank(stored) else stored
    return stored if is_blank(incoming) else incoming


def _incoming_value(draft, field):
    value = getattr(draft, field)
    if hasattr(value, "model_dump"):
        value = value.model_dump()
    return value


def _newest(existing, draft):
    if existing is None or existing.updated_at is None:
        return draft.updated_at
    return max(existing.updated_at, draft.updated_at)


def merge_customer(draft, existing, stats, default_currency: str = None) -> dict:
    """
    Combine a CustomerDraft with the stored Customer (or None) and the
    recomputed stats into the full column map for upsert_customer.
    """
    stale = is_stale(draft.updated_at, existing)
    values = {"shopify_id": draft.shopify_id}

    for field in CUSTOMER_CONTACT_FIELDS + CUSTOMER_DETAIL_FIELDS:
        stored = getattr(existing, field) if existing is not None else None
        values[field] = resolve_field(_incoming_value(draft, field), stored, stale)

    # Neither side knows these yet
    if values["state"] is None:
        values["state"] = "disabled"
    if values["currency"] is None:
        values["currency"] = default_currency
    if values["tax_exempt"] is None:
        values["tax_exempt"] = False
    if values["accepts_marketing"] is None:
        values["accepts_marketing"] = False

    values["orders_count"] = stats.orders_count
    values["total_spent"] = stats.total_spent
    values["average_order_value"] = stats.average_order_value

    values["created_at"] = existing.created_at if existing is not None else draft.created_at
    values["updated_at"] = _newest(existing, draft)
    return values


def merge_order(draft, existing, default_currency: str = None) -> dict:
    """Combine an OrderDraft with the stored Order (or None) into the column map for upsert_order."""
    stale = is_stale(draft.updated_at, existing)
    values = {"shopify_id": draft.shopify_id}

    for field in ORDER_FIELDS:
        stored = getattr(existing, field) if existing is not None else None
        values[field] = resolve_field(_incoming_value(draft, field), stored, stale)

    if (
        existing is not None
        and existing.financial_status in TERMINAL_FINANCIAL_STATUSES
        and existing.total_price is not None
    ):
        values["total_price"] = existing.total_price

    if values["financial_status"] is None:
        values["financial_status"] = "pending"
    if values["currency"] is None:
        values["currency"] = default_currency
    if values["test"] is None:
        values["test"] = False
    for field in ORDER_MONEY_FIELDS:
        if values[field] is None:
            values[field] = ZERO
    for field in ORDER_BLOB_FIELDS:
        if values[field] is None:
            values[field] = []

    values["created_at"] = existing.created_at if existing is not None else draft.created_at
    values["updated_at"] = _newest(existing, draft)
    return values
