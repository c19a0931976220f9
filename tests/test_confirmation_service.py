"""
Webhook and poll confirmation paths converging on the ledger writer.
"""
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import checkout_event, sign
from models import ConfirmationSource, Investment, PaymentStatus
from services.confirmation_service import confirm_session, handle_webhook, verify_session
from services.exceptions import NotFoundError, SignatureError, UpstreamUnavailable, ValidationError
from services.ledger_service import LedgerOutcome
from services.payment_gateway import CheckoutSession


def record_count(db):
    return db.execute(select(func.count(Investment.id))).scalar_one()


class TestWebhookPath:
    def test_completed_event_records_investment(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        payload = checkout_event("cs_A", s1, 50000, investor_id=42)

        result = handle_webhook(db, gateway, payload, sign(payload))

        assert result.outcome == LedgerOutcome.CREATED
        assert result.payment_status == PaymentStatus.COMPLETED
        assert result.investment.investor_id == 42
        assert result.investment.source == ConfirmationSource.WEBHOOK
        assert funding_of(s1) == Decimal("500")

    def test_redelivery_is_noop(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        payload = checkout_event("cs_A", s1, 50000)
        handle_webhook(db, gateway, payload, sign(payload))
        result = handle_webhook(db, gateway, payload, sign(payload))

        assert result.outcome == LedgerOutcome.DUPLICATE
        assert funding_of(s1) == Decimal("500")
        assert record_count(db) == 1

    def test_bad_signature_rejected_without_writes(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        payload = checkout_event("cs_A", s1, 50000)

        with pytest.raises(SignatureError):
            handle_webhook(db, gateway, payload, sign(payload, secret="whsec_wrong"))
        assert record_count(db) == 0
        assert funding_of(s1) == Decimal("0")

    def test_tampered_payload_rejected(self, db, make_startup, gateway):
        s1 = make_startup()
        payload = checkout_event("cs_A", s1, 50000)
        header = sign(payload)
        tampered = checkout_event("cs_A", s1, 99999999)

        with pytest.raises(SignatureError):
            handle_webhook(db, gateway, tampered, header)
        assert record_count(db) == 0

    def test_missing_signature_rejected(self, db, make_startup, gateway):
        s1 = make_startup()
        with pytest.raises(SignatureError):
            handle_webhook(db, gateway, checkout_event("cs_A", s1, 100), None)

    def test_stale_signature_rejected(self, db, make_startup, gateway):
        s1 = make_startup()
        payload = checkout_event("cs_A", s1, 100)
        with pytest.raises(SignatureError):
            handle_webhook(db, gateway, payload, sign(payload, timestamp=1000))

    def test_other_event_types_ignored(self, db, make_startup, gateway):
        s1 = make_startup()
        payload = checkout_event("cs_A", s1, 100, event_type="checkout.session.expired")
        assert handle_webhook(db, gateway, payload, sign(payload)) is None
        assert record_count(db) == 0

    def test_unpaid_completion_is_skipped(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        payload = checkout_event("cs_async", s1, 100, payment_status="unpaid")

        result = handle_webhook(db, gateway, payload, sign(payload))

        assert result.outcome == LedgerOutcome.SKIPPED
        assert result.payment_status == PaymentStatus.PENDING
        assert record_count(db) == 0
        assert funding_of(s1) == Decimal("0")

    def test_async_payment_succeeded_records(self, db, make_startup, gateway):
        s1 = make_startup()
        payload = checkout_event("cs_async", s1, 2500, event_type="checkout.session.async_payment_succeeded")
        result = handle_webhook(db, gateway, payload, sign(payload))
        assert result.outcome == LedgerOutcome.CREATED

    def test_unknown_startup_in_metadata(self, db, gateway):
        payload = checkout_event("cs_ghost", 31337, 100)
        with pytest.raises(ValidationError):
            handle_webhook(db, gateway, payload, sign(payload))
        assert record_count(db) == 0

    def test_rejected_session_is_logged_with_its_id(self, db, gateway, caplog):
        payload = checkout_event("cs_orphan", 31337, 2500)
        with caplog.at_level("ERROR", logger="services.confirmation_service"):
            with pytest.raises(ValidationError):
                handle_webhook(db, gateway, payload, sign(payload))
        assert "session=cs_orphan" in caplog.text
        assert "startup_id=31337" in caplog.text


class TestPollPath:
    def test_poll_records_completed_session(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        gateway.add_session("cs_P", s1, 250, investor_id=9)

        result = verify_session(db, gateway, "cs_P")

        assert result.outcome == LedgerOutcome.CREATED
        assert result.investment.source == ConfirmationSource.POLL
        assert funding_of(s1) == Decimal("250")

    def test_poll_pending_session_writes_nothing(self, db, make_startup, gateway):
        s1 = make_startup()
        gateway.add_session("cs_P", s1, 250, status=PaymentStatus.PENDING)

        result = verify_session(db, gateway, "cs_P")

        assert result.outcome == LedgerOutcome.SKIPPED
        assert record_count(db) == 0

    def test_processor_unreachable(self, db, make_startup, gateway):
        s1 = make_startup()
        gateway.add_session("cs_P", s1, 250)
        gateway.down = True

        with pytest.raises(UpstreamUnavailable):
            verify_session(db, gateway, "cs_P")
        assert record_count(db) == 0

    def test_unknown_session(self, db, gateway):
        with pytest.raises(NotFoundError):
            verify_session(db, gateway, "cs_missing")

    def test_blank_session_id(self, db, gateway):
        with pytest.raises(ValidationError):
            verify_session(db, gateway, "  ")


class TestDualPathRace:
    def test_webhook_then_poll(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        gateway.add_session("cs_R", s1, 500, investor_id=42)
        payload = checkout_event("cs_R", s1, 50000, investor_id=42)

        first = handle_webhook(db, gateway, payload, sign(payload))
        second = verify_session(db, gateway, "cs_R")

        assert first.outcome == LedgerOutcome.CREATED
        assert second.outcome == LedgerOutcome.DUPLICATE
        assert second.investment.source == ConfirmationSource.WEBHOOK
        assert funding_of(s1) == Decimal("500")

    def test_poll_then_webhook(self, db, make_startup, gateway, funding_of):
        s1 = make_startup()
        gateway.add_session("cs_R", s1, 500, investor_id=42)
        payload = checkout_event("cs_R", s1, 50000, investor_id=42)

        first = verify_session(db, gateway, "cs_R")
        second = handle_webhook(db, gateway, payload, sign(payload))

        assert first.outcome == LedgerOutcome.CREATED
        assert second.outcome == LedgerOutcome.DUPLICATE
        assert funding_of(s1) == Decimal("500")
        assert record_count(db) == 1


class TestMetadataValidation:
    def _session(self, metadata, amount_total=Decimal("10.00")):
        return CheckoutSession(
            session_id="cs_meta",
            status=PaymentStatus.COMPLETED,
            metadata=metadata,
            amount_total=amount_total,
            currency="usd",
        )

    @pytest.mark.parametrize("metadata", [
        {},
        {"startup_id": ""},
        {"startup_id": "abc"},
        {"startup_id": "-3"},
    ])
    def test_bad_startup_id(self, db, metadata):
        with pytest.raises(ValidationError):
            confirm_session(db, self._session(metadata), ConfirmationSource.WEBHOOK)

    def test_bad_investor_id(self, db, make_startup):
        s1 = make_startup()
        with pytest.raises(ValidationError):
            confirm_session(db, self._session({"startup_id": str(s1), "investor_id": "x"}), ConfirmationSource.POLL)

    def test_processor_amount_wins_over_metadata(self, db, make_startup, funding_of):
        s1 = make_startup()
        session = self._session({"startup_id": str(s1), "amount": "1.00"}, amount_total=Decimal("40.00"))

        result = confirm_session(db, session, ConfirmationSource.POLL)

        assert result.investment.amount == Decimal("40.00")
        assert funding_of(s1) == Decimal("40")

    def test_metadata_amount_used_without_processor_total(self, db, make_startup):
        s1 = make_startup()
        session = self._session({"startup_id": str(s1), "amount": "12.34"}, amount_total=None)
        result = confirm_session(db, session, ConfirmationSource.POLL)
        assert result.investment.amount == Decimal("12.34")
