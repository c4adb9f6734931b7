"""
Tests for Shopify webhook signature verification.

Covers the raw HMAC check and the request gate that decides between
"verified", "unsigned but tolerated" and rejection.
"""

import hashlib
import hmac

import pytest

from src.exceptions import AuthenticationError
from src.reconciliation.signature import verify_shopify_webhook, verify_webhook_request
from payloads import WEBHOOK_SECRET, sign

BODY = b'{"id": 100, "email": "a@x.com"}'


class TestVerifyShopifyWebhook:

    def test_valid_signature(self):
        assert verify_shopify_webhook(BODY, sign(BODY), WEBHOOK_SECRET) is True

    def test_tampered_body(self):
        assert verify_shopify_webhook(BODY + b" ", sign(BODY), WEBHOOK_SECRET) is False

    def test_wrong_secret(self):
        assert verify_shopify_webhook(BODY, sign(BODY, "other-secret"), WEBHOOK_SECRET) is False

    def test_header_is_not_base64(self):
        assert verify_shopify_webhook(BODY, "not base64 !!", WEBHOOK_SECRET) is False

    def test_hex_digest_is_rejected(self):
        """Shopify sends base64; a hex digest of the right HMAC must not pass."""
        hex_digest = hmac.new(WEBHOOK_SECRET.encode(), BODY, hashlib.sha256).hexdigest()
        assert verify_shopify_webhook(BODY, hex_digest, WEBHOOK_SECRET) is False

    def test_parsed_body_is_refused(self):
        with pytest.raises(TypeError):
            verify_shopify_webhook({"id": 100}, sign(BODY), WEBHOOK_SECRET)


class TestVerifyWebhookRequest:

    def test_valid_request(self):
        assert verify_webhook_request(BODY, sign(BODY), WEBHOOK_SECRET) is True

    def test_invalid_signature_raises(self):
        with pytest.raises(AuthenticationError, match="HMAC verification failed"):
            verify_webhook_request(BODY, sign(b"{}"), WEBHOOK_SECRET)

    def test_missing_header_tolerated_by_default(self):
        assert verify_webhook_request(BODY, None, WEBHOOK_SECRET) is False

    def test_missing_header_rejected_when_required(self):
        with pytest.raises(AuthenticationError):
            verify_webhook_request(BODY, None, WEBHOOK_SECRET, require_signature=True)

    def test_unconfigured_secret_rejects_signed_request(self):
        with pytest.raises(AuthenticationError):
            verify_webhook_request(BODY, sign(BODY), "")
