"""
Unit tests for the session, logo storage and Stripe adapters.

Stripe SDK calls are replaced with mocks; no network access.
"""

import logging
import re
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import stripe

from src.adapters.payments.stripe_gateway import (
    UNAVAILABLE_MESSAGE,
    StripeCheckoutGateway,
    StripeInvoiceGateway,
    customer_address,
    product_description,
    product_name,
    to_cents,
)
from src.adapters.sessions.memory import InMemorySessionStore
from src.adapters.storage.local import LocalLogoStorage
from src.api.dependencies import get_session_store
from src.config.settings import get_settings
from src.domain.exceptions import AccountCreationFailed, CheckoutFailed
from src.domain.models import Address, LogoFile, WizardSession
from src.domain.records import AccountSummary, build_account_summary


@pytest.fixture
def individual_summary(individual_state) -> AccountSummary:
    return build_account_summary(individual_state, "acct-1", base_fee=500, fee=500)


@pytest.fixture
def corporate_summary(corporate_state) -> AccountSummary:
    state = replace(corporate_state, has_other_associations=True)
    return build_account_summary(state, "acct-2", base_fee=900, fee=720)


class TestInMemorySessionStore:
    def test_save_get_delete(self) -> None:
        store = InMemorySessionStore()
        session = WizardSession("s1", "a1")

        store.save(session)
        assert store.get("s1") is session
        assert len(store) == 1

        store.delete("s1")
        assert store.get("s1") is None

    def test_delete_unknown_is_ignored(self) -> None:
        InMemorySessionStore().delete("nope")

    def test_idle_session_expires(self) -> None:
        now = [1000.0]
        store = InMemorySessionStore(ttl_seconds=60, clock=lambda: now[0])
        store.save(WizardSession("s1", "a1"))

        now[0] += 59
        assert store.get("s1") is not None

        now[0] += 60
        assert store.get("s1") is None
        assert len(store) == 0

    def test_save_evicts_abandoned_sessions(self, caplog) -> None:
        now = [0.0]
        store = InMemorySessionStore(ttl_seconds=60, clock=lambda: now[0])
        store.save(WizardSession("old", "a1"))
        store.save(WizardSession("busy", "a2"))

        now[0] = 45
        store.get("busy")
        now[0] = 90
        with caplog.at_level(logging.INFO):
            store.save(WizardSession("new", "a3"))

        assert store.get("old") is None
        assert store.get("busy") is not None
        assert len(store) == 2
        assert "Evicted 1 expired wizard session(s)" in caplog.text

    def test_dependency_uses_configured_ttl(self, monkeypatch) -> None:
        monkeypatch.setenv("SESSION_TTL_SECONDS", "5")
        get_settings.cache_clear()
        get_session_store.cache_clear()
        try:
            store = get_session_store()
            assert store is get_session_store()
            assert store._ttl_seconds == 5
        finally:
            get_settings.cache_clear()
            get_session_store.cache_clear()


class TestLocalLogoStorage:
    def test_writes_file_and_returns_url(self, tmp_path) -> None:
        storage = LocalLogoStorage(tmp_path / "logos", "https://cdn.example/logos/")

        url = storage.store_logo("Acme Underwriting Ltd.", LogoFile("a.svg", "image/svg+xml", b"<svg/>"))

        match = re.fullmatch(r"https://cdn\.example/logos/(acme-underwriting-ltd-\d+\.svg)", url)
        assert match is not None
        assert (tmp_path / "logos" / match.group(1)).read_bytes() == b"<svg/>"

    def test_unusable_name_falls_back(self, tmp_path) -> None:
        storage = LocalLogoStorage(tmp_path, "/logos")
        url = storage.store_logo("!!!", LogoFile("a.jpg", "image/jpeg", b"jpg"))
        assert re.fullmatch(r"/logos/organization-\d+\.jpg", url)

    def test_write_failure_raises(self, tmp_path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        storage = LocalLogoStorage(blocker, "/logos")

        with pytest.raises(AccountCreationFailed, match="Failed to upload logo"):
            storage.store_logo("Acme", LogoFile("a.png", "image/png", b"png"))


class TestStripeHelpers:
    def test_to_cents_rounds(self) -> None:
        assert to_cents(720) == 72000
        assert to_cents(0.01) == 1

    def test_product_names(self, individual_summary, corporate_summary) -> None:
        assert product_name(individual_summary) == "Individual Membership"
        assert product_name(corporate_summary) == "MGA Membership"

    def test_discount_noted_in_description(self, corporate_summary) -> None:
        assert product_description(corporate_summary).endswith(
            "Association Member Discount Applied"
        )

    def test_customer_address_keeps_iso_country_only(self, individual_summary) -> None:
        assert customer_address(individual_summary)["country"] == "GB"

        summary = replace(individual_summary, address=Address(city="Paris", country="France"))
        assert customer_address(summary) == {"city": "Paris"}


class TestStripeCheckoutGateway:
    def _gateway(self, api_key: str = "sk_test_1") -> StripeCheckoutGateway:
        return StripeCheckoutGateway(
            api_key=api_key,
            success_url="https://example.org/success",
            cancel_url="https://example.org/cancel",
        )

    def test_creates_yearly_subscription(self, monkeypatch, corporate_summary) -> None:
        create = Mock(return_value=SimpleNamespace(id="cs_1", url="https://checkout.stripe/cs_1"))
        monkeypatch.setattr(stripe.checkout.Session, "create", create)

        session = self._gateway().create_checkout(corporate_summary)

        assert session.session_id == "cs_1"
        assert session.url == "https://checkout.stripe/cs_1"
        kwargs = create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_1"
        assert kwargs["mode"] == "subscription"
        price = kwargs["line_items"][0]["price_data"]
        assert price["unit_amount"] == 72000
        assert price["recurring"] == {"interval": "year"}
        assert kwargs["metadata"]["has_association_discount"] == "true"
        assert kwargs["customer_email"] == "ada@example.com"

    def test_missing_key_raises_unavailable(self, corporate_summary) -> None:
        with pytest.raises(CheckoutFailed, match=UNAVAILABLE_MESSAGE):
            self._gateway(api_key="").create_checkout(corporate_summary)

    def test_stripe_error_raises_checkout_failed(self, monkeypatch, corporate_summary) -> None:
        monkeypatch.setattr(
            stripe.checkout.Session, "create", Mock(side_effect=stripe.StripeError("card declined"))
        )
        with pytest.raises(CheckoutFailed, match="Failed to create checkout session"):
            self._gateway().create_checkout(corporate_summary)

    def test_session_without_url_rejected(self, monkeypatch, corporate_summary) -> None:
        monkeypatch.setattr(
            stripe.checkout.Session, "create", Mock(return_value=SimpleNamespace(id="cs", url=None))
        )
        with pytest.raises(CheckoutFailed):
            self._gateway().create_checkout(corporate_summary)


class TestStripeInvoiceGateway:
    @pytest.fixture
    def stripe_api(self, monkeypatch) -> SimpleNamespace:
        api = SimpleNamespace(
            customer_list=Mock(return_value=SimpleNamespace(data=[])),
            customer_create=Mock(return_value=SimpleNamespace(id="cus_1")),
            invoice_create=Mock(return_value=SimpleNamespace(id="in_1")),
            item_create=Mock(),
            finalize=Mock(),
            send=Mock(return_value=SimpleNamespace(id="in_1")),
        )
        monkeypatch.setattr(stripe.Customer, "list", api.customer_list)
        monkeypatch.setattr(stripe.Customer, "create", api.customer_create)
        monkeypatch.setattr(stripe.Invoice, "create", api.invoice_create)
        monkeypatch.setattr(stripe.InvoiceItem, "create", api.item_create)
        monkeypatch.setattr(stripe.Invoice, "finalize_invoice", api.finalize)
        monkeypatch.setattr(stripe.Invoice, "send_invoice", api.send)
        return api

    def test_invoice_created_finalized_and_sent(self, stripe_api, individual_summary) -> None:
        result = StripeInvoiceGateway(api_key="sk_test_1").request_invoice(individual_summary)

        assert result.success is True
        assert result.email_sent is True
        assert result.invoice_id == "in_1"
        assert stripe_api.invoice_create.call_args.kwargs["collection_method"] == "send_invoice"
        assert stripe_api.item_create.call_args.kwargs["amount"] == 50000
        stripe_api.finalize.assert_called_once_with("in_1", api_key="sk_test_1")
        stripe_api.send.assert_called_once_with("in_1", api_key="sk_test_1")

    def test_new_customer_created(self, stripe_api, individual_summary) -> None:
        StripeInvoiceGateway(api_key="sk_test_1").request_invoice(individual_summary)

        kwargs = stripe_api.customer_create.call_args.kwargs
        assert kwargs["email"] == "ada@example.com"
        assert kwargs["name"] == "Ada Lovelace"
        assert stripe_api.invoice_create.call_args.kwargs["customer"] == "cus_1"

    def test_existing_customer_reused(self, stripe_api, individual_summary) -> None:
        stripe_api.customer_list.return_value = SimpleNamespace(data=[SimpleNamespace(id="cus_old")])

        StripeInvoiceGateway(api_key="sk_test_1").request_invoice(individual_summary)

        stripe_api.customer_create.assert_not_called()
        assert stripe_api.invoice_create.call_args.kwargs["customer"] == "cus_old"

    def test_stripe_error_reported_in_result(self, stripe_api, individual_summary) -> None:
        stripe_api.send.side_effect = stripe.StripeError("mailbox unavailable")

        result = StripeInvoiceGateway(api_key="sk_test_1").request_invoice(individual_summary)

        assert result.success is False
        assert result.email_sent is False
        assert result.error == "Failed to send invoice email"

    def test_missing_key_reports_unavailable(self, stripe_api, individual_summary) -> None:
        result = StripeInvoiceGateway(api_key="").request_invoice(individual_summary)

        assert result.success is False
        assert result.error == UNAVAILABLE_MESSAGE
        stripe_api.invoice_create.assert_not_called()
