"""
Tests for turning raw Shopify bodies into customer/order drafts.

These are unit tests that do NOT require a database.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from src.exceptions import ValidationError
from src.reconciliation.normalizer import (
    average_order_value,
    extract_shopify_id,
    normalize_address,
    normalize_customer,
    normalize_order,
    parse_notification,
)
from payloads import customer_payload, encode, order_payload


class TestParseNotification:

    def test_valid_object(self):
        assert parse_notification(encode({"id": 1})) == {"id": 1}

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            parse_notification(b"{not json")

    def test_array_body_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_notification(b"[1, 2]")


class TestExtractShopifyId:

    def test_numeric(self):
        assert extract_shopify_id(123) == "123"

    def test_gid(self):
        assert extract_shopify_id("gid://shopify/Customer/987654321") == "987654321"

    def test_blank(self):
        assert extract_shopify_id("  ") is None
        assert extract_shopify_id(None) is None


class TestNormalizeCustomer:

    def test_missing_id_reports_received_keys(self):
        payload = customer_payload()
        del payload["id"]
        with pytest.raises(ValidationError, match="Customer ID is required") as exc_info:
            normalize_customer(payload)
        assert "email" in exc_info.value.received_keys
        assert "id" not in exc_info.value.received_keys

    def test_money_and_reported_stats(self):
        draft = normalize_customer(customer_payload(orders_count=3, total_spent="100.00"))
        assert draft.shopify_id == "100"
        assert draft.reported_orders_count == 3
        assert draft.reported_total_spent == Decimal("100.00")
        assert draft.reported_average_order_value == Decimal("33.33")

    def test_timestamps_become_naive_utc(self):
        draft = normalize_customer(customer_payload(updated_at="2025-01-10T12:00:00-03:00"))
        assert draft.updated_at == datetime(2025, 1, 10, 15, 0, 0)
        assert draft.updated_at.tzinfo is None

    def test_missing_timestamps_default_to_now(self):
        payload = customer_payload()
        del payload["created_at"]
        payload["updated_at"] = "garbage"
        draft = normalize_customer(payload)
        assert draft.created_at is not None
        assert draft.updated_at is not None

    def test_blank_strings_become_none(self):
        draft = normalize_customer(customer_payload(phone="  ", note=""))
        assert draft.phone is None
        assert draft.note is None

    def test_marketing_falls_back_to_email_consent(self):
        payload = customer_payload(email_marketing_consent={
            "state": "subscribed",
            "opt_in_level": "single_opt_in",
            "consent_updated_at": "2025-01-05T00:00:00Z",
        })
        del payload["accepts_marketing"]
        draft = normalize_customer(payload)
        assert draft.accepts_marketing is True
        assert draft.marketing_opt_in_level == "single_opt_in"
        assert draft.accepts_marketing_updated_at == datetime(2025, 1, 5)


class TestNormalizeOrder:

    def test_missing_id(self):
        payload = order_payload()
        payload["id"] = None
        with pytest.raises(ValidationError, match="Order ID is required"):
            normalize_order(payload)

    def test_money_fields(self):
        draft = normalize_order(order_payload(total_price="50.00", total_shipping_price_set={
            "shop_money": {"amount": "12.5", "currency_code": "BRL"},
        }))
        assert draft.total_price == Decimal("50.00")
        assert draft.total_shipping_price == Decimal("12.50")
        assert draft.current_total_price is None

    def test_embedded_customer_backfilled_from_billing(self):
        draft = normalize_order(order_payload(customer_id=200, email="b@y.com"))
        assert draft.customer_id == "200"
        customer = draft.customer
        assert customer.shopify_id == "200"
        assert customer.email == "b@y.com"
        assert customer.first_name == "Ana"
        assert customer.last_name == "Souza"
        assert customer.phone == "+5511999990000"
        assert customer.currency == "BRL"
        assert customer.default_address.address1 == "Rua das Flores"
        assert customer.default_address.address2 == "123"

    def test_guest_checkout_has_no_customer(self):
        draft = normalize_order(order_payload(customer_id=None))
        assert draft.customer is None
        assert draft.customer_id is None

    def test_customer_without_id_is_ignored(self):
        payload = order_payload()
        payload["customer"]["id"] = None
        assert normalize_order(payload).customer is None


class TestHelpers:

    def test_average_order_value_zero_orders(self):
        assert average_order_value(Decimal("0.00"), 0) == Decimal("0.00")

    def test_average_order_value_rounds_half_up(self):
        assert average_order_value(Decimal("0.05"), 2) == Decimal("0.03")

    def test_empty_address(self):
        assert normalize_address({"city": "", "zip": None}) is None
        assert normalize_address("not a dict") is None


class TestMalformedNestedFields:

    def test_order_line_items_must_be_objects(self):
        with pytest.raises(ValidationError, match="Invalid Order payload: line_items") as exc_info:
            normalize_order(order_payload(line_items=[1, 2]))
        assert "line_items" in exc_info.value.received_keys

    def test_customer_addresses_must_be_objects(self):
        with pytest.raises(ValidationError, match="Invalid Customer payload: addresses") as exc_info:
            normalize_customer(customer_payload(addresses=["not-an-object"]))
        assert "addresses" in exc_info.value.received_keys
