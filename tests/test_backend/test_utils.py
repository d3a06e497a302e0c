"""
Tests for validators, webhook signatures and logger setup
"""
import logging

import pytest

from ticket_dedup.utils.auth import compute_signature, verify_webhook_signature
from ticket_dedup.utils.logger import get_logger
from ticket_dedup.utils.validators import sanitize_input, validate_ticket_key


class TestValidateTicketKey:
    @pytest.mark.parametrize("key", ["BUG-201", "proj-1", "WEB_APP-42"])
    def test_valid_keys(self, key):
        assert validate_ticket_key(key) is True

    @pytest.mark.parametrize("key", ["", "BUG", "201", "BUG-", "-12", "login button"])
    def test_invalid_keys(self, key):
        assert validate_ticket_key(key) is False


class TestSanitizeInput:
    def test_removes_null_bytes_and_strips(self):
        assert sanitize_input("  login\x00 crash  ") == "login crash"

    def test_truncates_to_max_length(self):
        assert sanitize_input("a" * 50, max_length=10) == "a" * 10


class TestWebhookSignature:
    def test_accepts_prefixed_signature(self):
        body = b'{"webhookEvent": "jira:issue_created"}'
        signature = "sha256=" + compute_signature("s3cret", body)

        assert verify_webhook_signature("s3cret", body, signature) is True

    def test_accepts_bare_hex_signature(self):
        body = b"{}"
        assert verify_webhook_signature("s3cret", body, compute_signature("s3cret", body)) is True

    def test_rejects_wrong_secret(self):
        body = b"{}"
        signature = "sha256=" + compute_signature("other", body)

        assert verify_webhook_signature("s3cret", body, signature) is False

    def test_rejects_missing_signature(self):
        assert verify_webhook_signature("s3cret", b"{}", None) is False


def test_get_logger_attaches_single_handler():
    name = "ticket_dedup.tests.logger_probe"
    first = get_logger(name)
    second = get_logger(name)

    assert first is second
    assert len(first.handlers) == 1
    assert isinstance(first.handlers[0], logging.StreamHandler)
