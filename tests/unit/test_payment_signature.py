"""Unit tests for webhook signature checks."""

import hashlib
import hmac
import logging

from brokerdesk.dependencies.payment_gateway import compute_signature, verify_signature

BODY = b'{"invoiceId":"INV-1","invoiceStatus":"Paid","invoiceValue":"1000.00","customerReference":"1"}'


class TestSignature:

    def test_signature_is_hex_hmac_sha256(self):
        expected = hmac.new(b"secret", BODY, hashlib.sha256).hexdigest()
        assert compute_signature(BODY, "secret") == expected

    def test_valid_signature(self):
        assert verify_signature(BODY, compute_signature(BODY, "secret"), secret="secret") is True

    def test_tampered_body(self):
        signature = compute_signature(BODY, "secret")
        assert verify_signature(BODY.replace(b"1000.00", b"9000.00"), signature, secret="secret") is False

    def test_missing_signature(self):
        assert verify_signature(BODY, None, secret="secret") is False

    def test_empty_secret_rejects_everything(self):
        assert verify_signature(BODY, compute_signature(BODY, ""), secret="") is False

    def test_empty_secret_is_logged(self, caplog):
        with caplog.at_level(logging.ERROR, logger="brokerdesk.dependencies.payment_gateway"):
            verify_signature(BODY, "deadbeef", secret="")
        assert "PAYMENT_WEBHOOK_SECRET is not configured" in caplog.text
