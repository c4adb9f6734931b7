"""Map loosely-typed Shopify webhook bodies onto the internal drafts.

Everything here is pure: no storage access, no logging of PII. Missing
optional fields become None so the merge step can tell "absent" from
"explicitly false/zero".
"""

import json
from decimal import Decimal, ROUND_HALF_UP
from pydantic import ValidationError as PydanticValidationError
from src.exceptions import ValidationError
from src.models.base_model import AddressDraft, CustomerDraft, OrderDraft
from src.utils import parse_timestamp, to_decimal, clean_str, CENTS

ZERO = Decimal("0.00")

_ADDRESS_FIELDS = (
    "address1", "address2", "city", "province", "province_code",
    "country", "country_code", "zip", "phone", "company", "first_name", "last_name",
)


def parse_notification(raw_body: bytes) -> dict:
    """Decode the raw webhook body. Only JSON objects are accepted."""
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")
    return payload


def extract_shopify_id(value):
    """Accept numeric IDs, numeric strings and GraphQL GIDs (gid://shopify/Order/123)."""
    text = clean_str(value)
    if text is None:
        return None
    if text.startswith("gid://"):
        text = text.rsplit("/", 1)[-1]
    return text or None


def _require_id(payload: dict, entity: str) -> str:
    shopify_id = extract_shopify_id(payload.get("id"))
    if shopify_id is None:
        raise ValidationError(f"{entity} ID is required", received_keys=payload.keys())
    return shopify_id


def _invalid_payload(payload: dict, entity: str, error: PydanticValidationError) -> ValidationError:
    fields = sorted({str(detail["loc"][0]) for detail in error.errors() if detail.get("loc")})
    return ValidationError(f"Invalid {entity} payload: {', '.join(fields)}", received_keys=payload.keys())


def _as_bool(value):
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _as_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_list(value):
    return value if isinstance(value, list) else None


def _as_dict(value):
    return value if isinstance(value, dict) and value else None


def normalize_address(data) -> AddressDraft:
    if not isinstance(data, dict):
        return None
    address = AddressDraft(**{field: clean_str(data.get(field)) for field in _ADDRESS_FIELDS})
    return None if address.is_empty() else address


def average_order_value(total_spent: Decimal, orders_count: int) -> Decimal:
    if not orders_count:
        return ZERO
    return (total_spent / orders_count).quantize(CENTS, rounding=ROUND_HALF_UP)


def _customer_draft(data: dict, shopify_id: str, **fallbacks) -> CustomerDraft:
    """Build a CustomerDraft from a customer object; fallbacks fill blanks."""
    orders_count = _as_int(data.get("orders_count"), 0)
    total_spent = to_decimal(data.get("total_spent"), ZERO)
    email_consent = _as_dict(data.get("email_marketing_consent"))

    accepts_marketing = _as_bool(data.get("accepts_marketing"))
    if accepts_marketing is None and email_consent and email_consent.get("state"):
        accepts_marketing = email_consent.get("state") == "subscribed"
    accepts_marketing_updated_at = parse_timestamp(data.get("accepts_marketing_updated_at"))
    if accepts_marketing_updated_at is None and email_consent:
        accepts_marketing_updated_at = parse_timestamp(email_consent.get("consent_updated_at"))

    def pick(key):
        return clean_str(data.get(key)) or fallbacks.get(key)

    default_address = normalize_address(data.get("default_address")) or fallbacks.get("default_address")
    tax_exemptions = _as_list(data.get("tax_exemptions"))

    return CustomerDraft(
        shopify_id=shopify_id,
        email=pick("email"),
        first_name=pick("first_name"),
        last_name=pick("last_name"),
        phone=pick("phone"),
        reported_orders_count=orders_count,
        reported_total_spent=total_spent,
        reported_average_order_value=average_order_value(total_spent, orders_count),
        currency=pick("currency"),
        tags=clean_str(data.get("tags")),
        note=clean_str(data.get("note")),
        state=clean_str(data.get("state")),
        tax_exempt=_as_bool(data.get("tax_exempt")),
        tax_exemptions=tax_exemptions or None,
        accepts_marketing=accepts_marketing,
        accepts_marketing_updated_at=accepts_marketing_updated_at,
        marketing_opt_in_level=clean_str(data.get("marketing_opt_in_level"))
        or (clean_str(email_consent.get("opt_in_level")) if email_consent else None),
        email_marketing_consent=email_consent,
        sms_marketing_consent=_as_dict(data.get("sms_marketing_consent")),
        admin_graphql_api_id=clean_str(data.get("admin_graphql_api_id")),
        default_address=default_address,
        addresses=_as_list(data.get("addresses")) or None,
        created_at=parse_timestamp(data.get("created_at"), default_now=True),
        updated_at=parse_timestamp(data.get("updated_at"), default_now=True),
    )


def normalize_customer(payload: dict) -> CustomerDraft:
    """customers/create and customers/update bodies (and REST customers.json records)."""
    shopify_id = _require_id(payload, "Customer")
    try:
        return _customer_draft(payload, shopify_id)
    except PydanticValidationError as e:
        raise _invalid_payload(payload, "Customer", e) from e


def _customer_from_order(payload: dict):
    """
    The customer embedded in an order, backfilled from the billing address
    and the order's own contact fields when the sub-record withholds them.
    """
    data = payload.get("customer")
    if not isinstance(data, dict):
        return None
    shopify_id = extract_shopify_id(data.get("id"))
    if shopify_id is None:
        return None
    billing = payload.get("billing_address") if isinstance(payload.get("billing_address"), dict) else {}
    return _customer_draft(
        data,
        shopify_id,
        email=clean_str(payload.get("email")) or clean_str(payload.get("contact_email")),
        first_name=clean_str(billing.get("first_name")),
        last_name=clean_str(billing.get("last_name")),
        phone=clean_str(billing.get("phone")) or clean_str(payload.get("phone")),
        currency=clean_str(payload.get("currency")),
        default_address=normalize_address(billing),
    )


def _shop_money(payload: dict, key: str):
    money_set = payload.get(key)
    if isinstance(money_set, dict) and isinstance(money_set.get("shop_money"), dict):
        return to_decimal(money_set["shop_money"].get("amount"))
    return None


def normalize_order(payload: dict) -> OrderDraft:
    """orders/create and orders/update bodies."""
    shopify_id = _require_id(payload, "Order")
    try:
        return _order_draft(payload, shopify_id)
    except PydanticValidationError as e:
        raise _invalid_payload(payload, "Order", e) from e


def _order_draft(payload: dict, shopify_id: str) -> OrderDraft:
    customer = _customer_from_order(payload)
    return OrderDraft(
        shopify_id=shopify_id,
        order_number=_as_int(payload.get("order_number")),
        name=clean_str(payload.get("name")),
        email=clean_str(payload.get("email")),
        phone=clean_str(payload.get("phone")),
        customer_id=customer.shopify_id if customer else None,
        financial_status=clean_str(payload.get("financial_status")),
        fulfillment_status=clean_str(payload.get("fulfillment_status")),
        currency=clean_str(payload.get("currency")),
        subtotal_price=to_decimal(payload.get("subtotal_price")),
        total_tax=to_decimal(payload.get("total_tax")),
        total_discounts=to_decimal(payload.get("total_discounts")),
        total_shipping_price=_shop_money(payload, "total_shipping_price_set"),
        total_price=to_decimal(payload.get("total_price")),
        current_subtotal_price=to_decimal(payload.get("current_subtotal_price")),
        current_total_price=to_decimal(payload.get("current_total_price")),
        line_items=_as_list(payload.get("line_items")),
        shipping_lines=_as_list(payload.get("shipping_lines")),
        billing_address=_as_dict(payload.get("billing_address")),
        shipping_address=_as_dict(payload.get("shipping_address")),
        fulfillments=_as_list(payload.get("fulfillments")),
        tags=clean_str(payload.get("tags")),
        note=clean_str(payload.get("note")),
        gateway=clean_str(payload.get("gateway")),
        test=_as_bool(payload.get("test")),
        cancel_reason=clean_str(payload.get("cancel_reason")),
        created_at=parse_timestamp(payload.get("created_at"), default_now=True),
        processed_at=parse_timestamp(payload.get("processed_at")),
        cancelled_at=parse_timestamp(payload.get("cancelled_at")),
        closed_at=parse_timestamp(payload.get("closed_at")),
        updated_at=parse_timestamp(payload.get("updated_at"), default_now=True),
        customer=customer,
    )
