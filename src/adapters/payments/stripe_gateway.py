"""
Stripe payment adapters - Implement CheckoutGateway and InvoiceGateway.

Hosted checkout creates a yearly subscription Checkout Session for the
membership fee. Invoice-on-account creates (or reuses) a Stripe customer,
adds the fee as an invoice item and has Stripe email the invoice.

The API key is passed per request rather than set globally on the stripe
module. An empty key disables both paths.
"""

import logging

import stripe

from src.domain.exceptions import CheckoutFailed
from src.domain.models import MembershipType
from src.domain.ports import CheckoutSession, InvoiceResult
from src.domain.records import AccountSummary

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Payment processing not available"


def to_cents(amount: float) -> int:
    return int(round(float(amount) * 100))


def product_name(summary: AccountSummary) -> str:
    if summary.membership_type == MembershipType.INDIVIDUAL:
        return "Individual Membership"
    return f"{summary.organization_type} Membership"


def product_description(summary: AccountSummary) -> str:
    if summary.membership_type == MembershipType.INDIVIDUAL:
        description = f"Annual individual membership for {summary.organization_name}"
    else:
        description = f"Annual corporate membership for {summary.organization_name}"
    if summary.fee < summary.base_fee:
        description += " - Association Member Discount Applied"
    return description


def summary_metadata(summary: AccountSummary) -> dict[str, str]:
    """Flat string metadata; Stripe rejects nested values."""
    return {
        "account_id": summary.account_id,
        "organization_name": summary.organization_name,
        "organization_type": summary.organization_type,
        "membership_type": summary.membership_type.value,
        "user_email": summary.email,
        "has_association_discount": "true" if summary.has_other_associations else "false",
        "test_payment": "true" if summary.test_payment else "false",
    }


def customer_address(summary: AccountSummary) -> dict[str, str]:
    """Stripe only accepts ISO 3166-1 alpha-2 country codes."""
    address = {
        "line1": summary.address.line1,
        "line2": summary.address.line2,
        "city": summary.address.city,
        "state": summary.address.state,
        "postal_code": summary.address.postal_code,
    }
    country = summary.address.country.strip()
    if len(country) == 2:
        address["country"] = country.upper()
    return {key: value for key, value in address.items() if value}


class StripeCheckoutGateway:
    """
    Implements CheckoutGateway protocol via Stripe Checkout.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        api_key: str,
        success_url: str,
        cancel_url: str,
        currency: str = "eur",
    ) -> None:
        self._api_key = api_key
        self._success_url = success_url
        self._cancel_url = cancel_url
        self._currency = currency

    def create_checkout(self, summary: AccountSummary) -> CheckoutSession:
        """
        Create a hosted checkout session for the annual fee.

        Raises:
            CheckoutFailed: Stripe not configured or the API call failed
        """
        if not self._api_key:
            raise CheckoutFailed(UNAVAILABLE_MESSAGE)

        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self._currency,
                            "product_data": {
                                "name": product_name(summary),
                                "description": product_description(summary),
                            },
                            "recurring": {"interval": "year"},
                            "unit_amount": to_cents(summary.fee),
                        },
                        "quantity": 1,
                    }
                ],
                metadata=summary_metadata(summary),
                success_url=self._success_url,
                cancel_url=self._cancel_url,
                customer_email=summary.email or None,
            )
        except stripe.StripeError as e:
            logger.warning("Stripe checkout failed for %s: %s", summary.account_id, e)
            raise CheckoutFailed("Failed to create checkout session") from e

        if not session.url:
            raise CheckoutFailed("Failed to create checkout session")
        return CheckoutSession(session_id=session.id, url=session.url)


class StripeInvoiceGateway:
    """Implements InvoiceGateway protocol via Stripe Invoicing."""

    def __init__(self, api_key: str, days_until_due: int = 30, currency: str = "eur") -> None:
        self._api_key = api_key
        self._days_until_due = days_until_due
        self._currency = currency

    def request_invoice(self, summary: AccountSummary) -> InvoiceResult:
        """
        Create, finalize and email an invoice for the annual fee.

        Stripe failures are reported in the result, not raised.
        """
        if not self._api_key:
            return InvoiceResult(success=False, email_sent=False, error=UNAVAILABLE_MESSAGE)

        metadata = summary_metadata(summary)
        try:
            customer = self._customer(summary, metadata)
            invoice = stripe.Invoice.create(
                api_key=self._api_key,
                customer=customer.id,
                collection_method="send_invoice",
                days_until_due=self._days_until_due,
                description=f"{product_name(summary)} - {summary.organization_name}",
                metadata=metadata,
            )
            stripe.InvoiceItem.create(
                api_key=self._api_key,
                customer=customer.id,
                invoice=invoice.id,
                amount=to_cents(summary.fee),
                currency=self._currency,
                description=f"{product_name(summary)} - Annual Fee",
            )
            stripe.Invoice.finalize_invoice(invoice.id, api_key=self._api_key)
            sent = stripe.Invoice.send_invoice(invoice.id, api_key=self._api_key)
        except stripe.StripeError as e:
            logger.warning("Stripe invoice failed for %s: %s", summary.account_id, e)
            return InvoiceResult(success=False, email_sent=False, error="Failed to send invoice email")

        logger.info("Stripe invoice %s sent to %s", sent.id, summary.email)
        return InvoiceResult(success=True, email_sent=True, invoice_id=sent.id)

    def _customer(self, summary: AccountSummary, metadata: dict[str, str]):
        """Reuse the customer registered for this email, if any."""
        existing = stripe.Customer.list(api_key=self._api_key, email=summary.email, limit=1)
        if existing.data:
            return existing.data[0]

        return stripe.Customer.create(
            api_key=self._api_key,
            email=summary.email,
            name=summary.primary_contact.name or summary.organization_name,
            description=f"{summary.organization_name} - Membership",
            metadata=metadata,
            address=customer_address(summary),
        )
