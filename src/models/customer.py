from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, Text, JSON
from sqlalchemy.orm import declarative_base
from src.utils import utcnow

Base = declarative_base()

MONEY = Numeric(12, 2)


class Customer(Base):
    """Local cache of a Shopify customer. Only the reconciliation engine writes here."""
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True, index=True)
    shopify_id = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, nullable=True, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    # Derived from stored orders, never copied from a payload
    orders_count = Column(Integer, nullable=False, default=0)
    total_spent = Column(MONEY, nullable=False, default=0)
    average_order_value = Column(MONEY, nullable=False, default=0)
    currency = Column(String, nullable=True)
    tags = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    state = Column(String, nullable=False, default="disabled")
    tax_exempt = Column(Boolean, nullable=False, default=False)
    tax_exemptions = Column(JSON, nullable=True)
    accepts_marketing = Column(Boolean, nullable=False, default=False)
    accepts_marketing_updated_at = Column(DateTime, nullable=True)
    marketing_opt_in_level = Column(String, nullable=True)
    email_marketing_consent = Column(JSON, nullable=True)
    sms_marketing_consent = Column(JSON, nullable=True)
    admin_graphql_api_id = Column(String, nullable=True)
    default_address = Column(JSON, nullable=True)
    addresses = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    last_sync_at = Column(DateTime, nullable=False, default=utcnow)


class Order(Base):
    """Local cache of a Shopify order."""
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, index=True)
    shopify_id = Column(String, unique=True, nullable=False, index=True)
    order_number = Column(Integer, nullable=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    customer_id = Column(String, nullable=True, index=True)
    financial_status = Column(String, nullable=False, default="pending")
    fulfillment_status = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    subtotal_price = Column(MONEY, nullable=False, default=0)
    total_tax = Column(MONEY, nullable=False, default=0)
    total_discounts = Column(MONEY, nullable=False, default=0)
    total_shipping_price = Column(MONEY, nullable=False, default=0)
    total_price = Column(MONEY, nullable=False, default=0)
    current_subtotal_price = Column(MONEY, nullable=False, default=0)
    current_total_price = Column(MONEY, nullable=False, default=0)
    line_items = Column(JSON, nullable=True)
    shipping_lines = Column(JSON, nullable=True)
    billing_address = Column(JSON, nullable=True)
    shipping_address = Column(JSON, nullable=True)
    fulfillments = Column(JSON, nullable=True)
    tags = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    gateway = Column(String, nullable=True)
    test = Column(Boolean, nullable=False, default=False)
    cancel_reason = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    processed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    last_sync_at = Column(DateTime, nullable=False, default=utcnow)
