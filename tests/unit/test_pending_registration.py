"""
Unit tests for PendingRegistrationManager.

Tests the verification code lifecycle against an in-memory repository:
- Code generation and expiry
- Upsert replacement (one pending registration per email)
- Resend in place
- Verify: wrong code, expiry, single consumption
- Email delivery failure tolerance
"""

import logging
import re
from datetime import timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest

from workdeck.domain.exceptions import InvalidOrExpiredCode, PendingRegistrationNotFound
from workdeck.domain.models import AddRole, NewAccount, PendingRegistration, Role
from workdeck.domain.pending import PendingRegistrationManager, generate_otp

NEW_ACCOUNT = NewAccount(name="Ann", password="Secret123", role=Role.FREELANCER, location="Porto")


class TestCodeGeneration:
    def test_code_is_six_uppercase_hex_characters(self) -> None:
        assert re.fullmatch(r"[0-9A-F]{6}", generate_otp())

    def test_codes_vary(self) -> None:
        codes = {generate_otp() for _ in range(20)}
        assert len(codes) >= 2


class TestInitiate:
    def test_stores_record_under_normalized_email(self, manager, pending_repo) -> None:
        manager.initiate("  Ann@Example.COM ", NEW_ACCOUNT)

        assert list(pending_repo.records) == ["ann@example.com"]
        assert pending_repo.records["ann@example.com"].staged_payload == NEW_ACCOUNT

    def test_expiry_is_ten_minutes_from_now(self, manager, pending_repo, clock) -> None:
        manager.initiate("ann@example.com", NEW_ACCOUNT)

        record = pending_repo.records["ann@example.com"]
        assert record.otp_expires == clock.now + timedelta(minutes=10)

    def test_custom_ttl(self, pending_repo, email_sender, clock) -> None:
        manager = PendingRegistrationManager(
            repository=pending_repo, email_sender=email_sender, ttl=timedelta(minutes=2), clock=clock
        )
        manager.initiate("ann@example.com", NEW_ACCOUNT)

        assert pending_repo.records["ann@example.com"].otp_expires == clock.now + timedelta(minutes=2)

    def test_sends_code_to_normalized_email(self, manager, pending_repo, email_sender) -> None:
        manager.initiate("ANN@example.com", NEW_ACCOUNT)

        assert len(email_sender.sent) == 1
        recipient, subject, body = email_sender.sent[0]
        assert recipient == "ann@example.com"
        assert subject == "WorkDeck - Email Verification"
        assert pending_repo.records["ann@example.com"].otp in body
        assert "10 minutes" in body

    def test_add_role_email_names_the_role(self, manager, email_sender) -> None:
        payload = AddRole(role=Role.CLIENT, account_id=uuid4(), name="Ann", location="")
        manager.initiate("ann@example.com", payload)

        _, subject, body = email_sender.sent[0]
        assert subject == "WorkDeck - Add New Role Verification"
        assert "client role" in body

    def test_second_initiate_replaces_first(self, manager, pending_repo) -> None:
        """At most one pending registration per email; the newest wins entirely."""
        first = manager.initiate("ann@example.com", NEW_ACCOUNT)
        replacement = NewAccount(name="Ann B", password="Other123", role=Role.CLIENT)
        second = manager.initiate("ANN@example.com", replacement)

        assert len(pending_repo.records) == 1
        record = pending_repo.records["ann@example.com"]
        assert record.staged_payload == replacement
        assert record.otp == second.otp
        if first.otp != second.otp:
            with pytest.raises(InvalidOrExpiredCode):
                manager.verify("ann@example.com", first.otp)

    def test_delivery_failure_does_not_fail_initiate(
        self, pending_repo, clock, caplog: pytest.LogCaptureFixture
    ) -> None:
        sender = Mock()
        sender.send.side_effect = ConnectionError("relay down")
        manager = PendingRegistrationManager(repository=pending_repo, email_sender=sender, clock=clock)

        with caplog.at_level(logging.ERROR):
            pending = manager.initiate("ann@example.com", NEW_ACCOUNT)

        assert "ann@example.com" in pending_repo.records
        assert pending.otp == pending_repo.records["ann@example.com"].otp
        assert "Failed to send verification code" in caplog.text

    def test_delivery_failure_leaves_code_verifiable(self, pending_repo, clock) -> None:
        sender = Mock()
        sender.send.side_effect = RuntimeError("boom")
        manager = PendingRegistrationManager(repository=pending_repo, email_sender=sender, clock=clock)

        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)

        assert manager.verify("ann@example.com", pending.otp) == NEW_ACCOUNT


class TestResend:
    def test_unknown_email_raises_not_found(self, manager) -> None:
        with pytest.raises(PendingRegistrationNotFound):
            manager.resend("nobody@example.com")

    def test_refreshes_code_and_expiry_keeps_payload(self, manager, pending_repo, clock) -> None:
        manager.initiate("ann@example.com", NEW_ACCOUNT)
        clock.advance(minutes=8)

        refreshed = manager.resend("Ann@Example.com")

        record = pending_repo.records["ann@example.com"]
        assert record.otp == refreshed.otp
        assert record.otp_expires == clock.now + timedelta(minutes=10)
        assert record.staged_payload == NEW_ACCOUNT

    def test_sends_resent_email(self, manager, email_sender) -> None:
        manager.initiate("ann@example.com", NEW_ACCOUNT)
        refreshed = manager.resend("ann@example.com")

        _, subject, body = email_sender.sent[-1]
        assert subject == "WorkDeck - Email Verification (Resent)"
        assert refreshed.otp in body

    def test_resent_code_survives_original_expiry(self, manager, clock) -> None:
        manager.initiate("ann@example.com", NEW_ACCOUNT)
        clock.advance(minutes=9)
        refreshed = manager.resend("ann@example.com")
        clock.advance(minutes=5)

        assert manager.verify("ann@example.com", refreshed.otp) == NEW_ACCOUNT

    def test_does_not_create_record(self, manager, pending_repo) -> None:
        with pytest.raises(PendingRegistrationNotFound):
            manager.resend("ann@example.com")
        assert pending_repo.records == {}


class TestVerify:
    def test_unknown_email_raises_not_found(self, manager) -> None:
        with pytest.raises(PendingRegistrationNotFound):
            manager.verify("nobody@example.com", "ABC123")

    def test_correct_code_returns_payload_and_consumes(self, manager, pending_repo) -> None:
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)

        payload = manager.verify("ann@example.com", pending.otp)

        assert payload == NEW_ACCOUNT
        assert pending_repo.records == {}

    def test_replay_after_success_raises_not_found(self, manager) -> None:
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)
        manager.verify("ann@example.com", pending.otp)

        with pytest.raises(PendingRegistrationNotFound):
            manager.verify("ann@example.com", pending.otp)

    def test_code_is_case_insensitive(self, manager) -> None:
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)

        assert manager.verify("ann@example.com", f" {pending.otp.lower()} ") == NEW_ACCOUNT

    def test_wrong_code_raises_invalid_and_keeps_record(self, manager, pending_repo) -> None:
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)
        wrong = "000000" if pending.otp != "000000" else "111111"

        with pytest.raises(InvalidOrExpiredCode):
            manager.verify("ann@example.com", wrong)

        assert "ann@example.com" in pending_repo.records

    def test_expired_correct_code_raises_invalid(self, manager, pending_repo, clock) -> None:
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)
        clock.advance(minutes=10, seconds=1)

        with pytest.raises(InvalidOrExpiredCode):
            manager.verify("ann@example.com", pending.otp)

        assert "ann@example.com" in pending_repo.records

    def test_code_valid_exactly_at_expiry(self, manager, clock) -> None:
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)
        clock.advance(minutes=10)

        assert manager.verify("ann@example.com", pending.otp) == NEW_ACCOUNT

    def test_wrong_and_expired_share_one_message(self, manager, clock) -> None:
        """No oracle distinguishing a wrong code from an expired one."""
        pending = manager.initiate("ann@example.com", NEW_ACCOUNT)
        wrong = "000000" if pending.otp != "000000" else "111111"

        with pytest.raises(InvalidOrExpiredCode) as wrong_exc:
            manager.verify("ann@example.com", wrong)
        clock.advance(hours=1)
        with pytest.raises(InvalidOrExpiredCode) as expired_exc:
            manager.verify("ann@example.com", pending.otp)

        assert str(wrong_exc.value) == str(expired_exc.value)

    def test_lost_consume_race_raises_not_found(self, email_sender, clock) -> None:
        """A concurrent verifier consumed the record between read and delete."""
        record = PendingRegistration(
            email="ann@example.com",
            otp="ABC123",
            otp_expires=clock.now + timedelta(minutes=5),
            staged_payload=NEW_ACCOUNT,
        )
        repo = Mock()
        repo.find.return_value = record
        repo.consume.return_value = None
        manager = PendingRegistrationManager(repository=repo, email_sender=email_sender, clock=clock)

        with pytest.raises(PendingRegistrationNotFound):
            manager.verify("ann@example.com", "ABC123")
        repo.consume.assert_called_once_with("ann@example.com", "ABC123")
