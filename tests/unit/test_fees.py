"""
Unit tests for the membership fee calculator.

Covers the flat fees, the MGA premium bands with currency conversion,
the association discount and premium bucket reconstruction.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from src.domain.fees import (
    MAX_BUCKET_LENGTH,
    PREMIUM_BANDS,
    calculate_membership_fee,
    fee_quote,
    format_gwp,
    get_discounted_fee,
    premium_band,
    total_gwp,
)
from src.domain.models import Currency, GWPInputs, OrganizationType, RegistrationState


def _mga(state: RegistrationState, premiums: str, currency: Currency = Currency.EUR):
    return replace(state, gross_written_premiums=premiums, gwp_currency=currency)


class TestFlatFees:
    def test_individual_pays_flat_fee(self, individual_state: RegistrationState) -> None:
        assert calculate_membership_fee(individual_state) == 500

    def test_carrier_ignores_premiums(self, corporate_state: RegistrationState) -> None:
        state = replace(
            corporate_state,
            organization_type=OrganizationType.CARRIER,
            gross_written_premiums="600000000",
        )
        assert calculate_membership_fee(state) == 900

    def test_provider_pays_corporate_flat_fee(self, corporate_state: RegistrationState) -> None:
        state = replace(corporate_state, organization_type=OrganizationType.PROVIDER)
        assert calculate_membership_fee(state) == 900

    def test_admin_test_overrides_everything(self, corporate_state: RegistrationState) -> None:
        state = replace(corporate_state, is_admin_test=True, gross_written_premiums="600000000")
        assert calculate_membership_fee(state) == 0.01


class TestMGABands:
    """Premium bands in EUR millions."""

    @pytest.mark.parametrize(
        ("premiums", "expected"),
        [
            ("8000000", 900),
            ("15000000", 1100),
            ("20000000", 1300),
            ("75000000", 1500),
            ("499999999", 1700),
            ("600000000", 2000),
        ],
    )
    def test_eur_bands(
        self, corporate_state: RegistrationState, premiums: str, expected: int
    ) -> None:
        assert calculate_membership_fee(_mga(corporate_state, premiums)) == expected

    def test_gbp_converted_before_banding(self, corporate_state: RegistrationState) -> None:
        """GBP 15M is EUR 17.55M, still the 10-20M band."""
        state = _mga(corporate_state, "15000000", Currency.GBP)
        assert calculate_membership_fee(state) == 1100

    def test_usd_conversion_can_drop_a_band(self, corporate_state: RegistrationState) -> None:
        """USD 10.5M is EUR 9.66M, below 10M."""
        state = _mga(corporate_state, "10500000", Currency.USD)
        assert calculate_membership_fee(state) == 900

    @pytest.mark.parametrize("premiums", ["", "abc"])
    def test_missing_premiums_fall_back_to_lowest_band(
        self, corporate_state: RegistrationState, premiums: str
    ) -> None:
        assert calculate_membership_fee(_mga(corporate_state, premiums)) == 900

    def test_band_fees_strictly_increase(self) -> None:
        fees = [fee for _, _, fee in PREMIUM_BANDS]
        assert fees == sorted(fees)
        assert len(set(fees)) == len(fees) == 6

    def test_band_labels(self) -> None:
        assert premium_band(9_999_999) == "<10m"
        assert premium_band(10_000_000) == "10-20m"
        assert premium_band(500_000_000) == "500m+"


class TestDiscount:
    def test_association_member_gets_twenty_percent_off(
        self, corporate_state: RegistrationState
    ) -> None:
        state = replace(
            _mga(corporate_state, "15000000"),
            has_other_associations=True,
            other_associations=frozenset({"MGAA"}),
        )
        assert calculate_membership_fee(state) == 1100
        assert get_discounted_fee(state) == 880

    def test_no_discount_without_associations(self, corporate_state: RegistrationState) -> None:
        assert get_discounted_fee(corporate_state) == calculate_membership_fee(corporate_state)

    def test_individual_never_discounted(self, individual_state: RegistrationState) -> None:
        state = replace(individual_state, has_other_associations=True)
        assert get_discounted_fee(state) == 500

    def test_admin_test_discount_rounds_to_zero(self, corporate_state: RegistrationState) -> None:
        state = replace(corporate_state, is_admin_test=True, has_other_associations=True)
        assert get_discounted_fee(state) == 0


class TestFeeQuote:
    def test_quote_for_discounted_mga(self, corporate_state: RegistrationState) -> None:
        state = replace(_mga(corporate_state, "15000000"), has_other_associations=True)
        quote = fee_quote(state)
        assert quote.base_fee == 1100
        assert quote.fee == 880
        assert quote.discount == 220
        assert quote.currency == "EUR"
        assert quote.premium_band == "10-20m"

    def test_individual_quote_has_no_band(self, individual_state: RegistrationState) -> None:
        quote = fee_quote(individual_state)
        assert quote.fee == 500
        assert quote.discount == 0
        assert quote.premium_band is None


class TestPremiumReconstruction:
    def test_buckets_combine_by_magnitude(self) -> None:
        inputs = GWPInputs(billions="1", millions="250", thousands="3", hundreds="42")
        assert total_gwp(inputs) == Decimal("1250003042")

    def test_fractional_buckets(self) -> None:
        assert format_gwp(total_gwp(GWPInputs(millions="1.5"))) == "1500000"

    def test_non_numeric_buckets_count_as_zero(self) -> None:
        inputs = GWPInputs(billions="lots", millions="8", thousands="", hundreds="NaN")
        assert total_gwp(inputs) == Decimal("8000000")

    def test_format_never_uses_exponent(self) -> None:
        assert format_gwp(Decimal("8E+6")) == "8000000"
        assert format_gwp(Decimal("0.000")) == "0"
        assert format_gwp(Decimal("12.50")) == "12.5"

    def test_exponent_form_counts_as_zero(self) -> None:
        inputs = GWPInputs(millions="1e999999", hundreds="1E6")
        assert total_gwp(inputs) == Decimal(0)

    def test_signed_and_over_long_buckets_count_as_zero(self) -> None:
        inputs = GWPInputs(billions="-1", millions="+2", thousands="9" * 16, hundreds=" 7 ")
        assert total_gwp(inputs) == Decimal(7)

    def test_longest_bucket_still_parsed(self) -> None:
        assert total_gwp(GWPInputs(hundreds="9" * MAX_BUCKET_LENGTH)) == Decimal("9" * 15)
