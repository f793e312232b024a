"""
Membership fee calculator.

Fees are annual and quoted in EUR. Individual and non-MGA corporate
memberships pay a flat fee. MGA memberships are banded by gross written
premium (GWP) after converting the declared amount to EUR with fixed
multipliers. Members of other European MGA associations get 20% off.

None of these functions raise: premium input that is not a plain decimal
number (signs, exponents, over-long digit runs) counts as zero.
"""

import re
from decimal import Decimal

from .models import (
    Currency,
    FeeQuote,
    GWPInputs,
    MembershipType,
    OrganizationType,
    RegistrationState,
)

ADMIN_TEST_FEE = 0.01
INDIVIDUAL_FEE = 500
CORPORATE_FLAT_FEE = 900
ASSOCIATION_DISCOUNT_FACTOR = 0.8

# Multiplier converting one unit of the source currency to EUR
EUR_CONVERSION_RATES: dict[Currency, float] = {
    Currency.EUR: 1.0,
    Currency.GBP: 1.17,
    Currency.USD: 0.92,
}

# (upper bound in EUR millions, exclusive; label; annual fee)
PREMIUM_BANDS: tuple[tuple[float, str, int], ...] = (
    (10, "<10m", 900),
    (20, "10-20m", 1100),
    (50, "20-50m", 1300),
    (100, "50-100m", 1500),
    (500, "100-500m", 1700),
    (float("inf"), "500m+", 2000),
)

_MAGNITUDES = (
    ("billions", Decimal(10) ** 9),
    ("millions", Decimal(10) ** 6),
    ("thousands", Decimal(10) ** 3),
    ("hundreds", Decimal(1)),
)

MAX_BUCKET_LENGTH = 15

_PLAIN_DECIMAL = re.compile(r"\d+(\.\d+)?")


def _parse_decimal(value: str, max_length: int | None = None) -> Decimal:
    if not isinstance(value, str):
        return Decimal(0)
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        return Decimal(0)
    if not _PLAIN_DECIMAL.fullmatch(value):
        return Decimal(0)
    try:
        return Decimal(value)
    except ArithmeticError:
        return Decimal(0)


def total_gwp(inputs: GWPInputs) -> Decimal:
    """Reconstruct billions*1e9 + millions*1e6 + thousands*1e3 + hundreds."""
    return sum(
        (
            _parse_decimal(getattr(inputs, bucket), MAX_BUCKET_LENGTH) * factor
            for bucket, factor in _MAGNITUDES
        ),
        Decimal(0),
    )


def format_gwp(total: Decimal) -> str:
    """Canonical decimal string, never in exponent notation ("8000000", "1.5")."""
    normalized = total.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")


def gwp_value(gross_written_premiums: str) -> Decimal:
    return _parse_decimal(gross_written_premiums or "")


def to_eur(amount: Decimal, currency: Currency) -> float:
    return float(amount) * EUR_CONVERSION_RATES.get(currency, 1.0)


def premium_band(eur_amount: float) -> str:
    millions = eur_amount / 1_000_000
    for upper, label, _ in PREMIUM_BANDS:
        if millions < upper:
            return label
    return PREMIUM_BANDS[-1][1]


def band_fee(eur_amount: float) -> int:
    millions = eur_amount / 1_000_000
    for upper, _, fee in PREMIUM_BANDS:
        if millions < upper:
            return fee
    return PREMIUM_BANDS[-1][2]


def calculate_membership_fee(state: RegistrationState) -> float:
    """Base annual fee before any association discount."""
    if state.is_admin_test:
        return ADMIN_TEST_FEE

    if state.membership_type == MembershipType.INDIVIDUAL:
        return INDIVIDUAL_FEE

    if state.organization_type == OrganizationType.MGA:
        eur_amount = to_eur(gwp_value(state.gross_written_premiums), state.gwp_currency)
        return band_fee(eur_amount)

    return CORPORATE_FLAT_FEE


def get_discounted_fee(state: RegistrationState) -> float:
    base_fee = calculate_membership_fee(state)
    if state.membership_type == MembershipType.CORPORATE and state.has_other_associations is True:
        return round(base_fee * ASSOCIATION_DISCOUNT_FACTOR)
    return base_fee


def fee_quote(state: RegistrationState) -> FeeQuote:
    base_fee = calculate_membership_fee(state)
    fee = get_discounted_fee(state)
    band = None
    if state.is_mga and not state.is_admin_test:
        band = premium_band(to_eur(gwp_value(state.gross_written_premiums), state.gwp_currency))
    return FeeQuote(base_fee=base_fee, fee=fee, discount=base_fee - fee, premium_band=band)
