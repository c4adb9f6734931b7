from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, List, Any


class AddressDraft(BaseModel):
    """
    Structured address extracted from a Shopify address object.
    address1 carries the street, address2 the number/complement.
    """
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    province_code: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class CustomerDraft(BaseModel):
    """
    A customer as observed in one notification.
    Every field but shopify_id may be missing; None means "not observed".
    """
    shopify_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    # What Shopify reported; only logged, the stored stats are recomputed
    reported_orders_count: int = 0
    reported_total_spent: Decimal = Decimal("0")
    reported_average_order_value: Decimal = Decimal("0")
    currency: Optional[str] = None
    tags: Optional[str] = None
    note: Optional[str] = None
    state: Optional[str] = None
    tax_exempt: Optional[bool] = None
    tax_exemptions: Optional[List[Any]] = None
    accepts_marketing: Optional[bool] = None
    accepts_marketing_updated_at: Optional[datetime] = None
    marketing_opt_in_level: Optional[str] = None
    email_marketing_consent: Optional[dict] = None
    sms_marketing_consent: Optional[dict] = None
    admin_graphql_api_id: Optional[str] = None
    default_address: Optional[AddressDraft] = None
    addresses: Optional[List[dict]] = None
    created_at: datetime
    updated_at: datetime


class OrderDraft(BaseModel):
    """An order as observed in one notification, plus the customer it embeds."""
    shopify_id: str
    order_number: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    customer_id: Optional[str] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    currency: Optional[str] = None
    subtotal_price: Optional[Decimal] = None
    total_tax: Optional[Decimal] = None
    total_discounts: Optional[Decimal] = None
    total_shipping_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    current_subtotal_price: Optional[Decimal] = None
    current_total_price: Optional[Decimal] = None
    line_items: Optional[List[dict]] = None
    shipping_lines: Optional[List[dict]] = None
    billing_address: Optional[dict] = None
    shipping_address: Optional[dict] = None
    fulfillments: Optional[List[dict]] = None
    tags: Optional[str] = None
    note: Optional[str] = None
    gateway: Optional[str] = None
    test: Optional[bool] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    updated_at: datetime
    customer: Optional[CustomerDraft] = None


class CustomerStats(BaseModel):
    orders_count: int = 0
    total_spent: Decimal = Decimal("0.00")
    average_order_value: Decimal = Decimal("0.00")


class SyncCounts(BaseModel):
    """Counters recorded on a sync audit record."""
    seen: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0


class ReconcileResult(BaseModel):
    """Outcome of reconciling one notification."""
    entity: str
    created: bool
    summary: dict = Field(default_factory=dict)
