"""
Financial breakdown of an order total.

Splits a total into the platform's application fee, tax and the escrow
amount held for the seller:

    application_fee = total * application_fee_percent / 100
    tax             = total * tax_rate_percent / 100
    remainder       = total - application_fee - tax
    escrow          = remainder * escrow_percent / 100   (escrow_percent non-zero)
                    = remainder                          (unset or 0)

Every amount is a Decimal rounded half-up to cents. Inputs are not
validated: a negative total or percentages summing past 100 give the
arithmetic result.

Usage:
    from marketplace.financial import BreakdownConfig, calculate_financial_breakdown

    breakdown = calculate_financial_breakdown(
        Decimal("100"),
        BreakdownConfig(application_fee_percent=10, tax_rate_percent=5, escrow_percent=50),
    )
    breakdown.escrow_amount  # Decimal("42.50")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BreakdownConfig:
    application_fee_percent: Decimal | int | float | str = 0
    tax_rate_percent: Decimal | int | float | str = 0
    escrow_percent: Decimal | int | float | str | None = None

    @classmethod
    def from_settings(cls) -> BreakdownConfig:
        """Build the config from MARKETPLACE_* settings."""
        return cls(
            application_fee_percent=getattr(settings, "MARKETPLACE_APPLICATION_FEE_PERCENT", 0),
            tax_rate_percent=getattr(settings, "MARKETPLACE_TAX_RATE_PERCENT", 0),
            escrow_percent=getattr(settings, "MARKETPLACE_ESCROW_PERCENT", None),
        )


@dataclass(frozen=True)
class FinancialBreakdown:
    application_fee_amount: Decimal
    tax_amount: Decimal
    escrow_amount: Decimal


def _to_decimal(value) -> Decimal:
    # str() first so floats like 0.1 keep their printed value
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_financial_breakdown(
    total, config: BreakdownConfig | None = None
) -> FinancialBreakdown:
    config = config or BreakdownConfig()
    total = _to_decimal(total)

    application_fee = _cents(total * _to_decimal(config.application_fee_percent) / HUNDRED)
    tax = _cents(total * _to_decimal(config.tax_rate_percent) / HUNDRED)
    # Remainder after the rounded charges, so fee + tax + escrow == total
    remainder = total - application_fee - tax

    escrow_percent = config.escrow_percent
    if escrow_percent is None or _to_decimal(escrow_percent) == 0:
        escrow = remainder
    else:
        escrow = remainder * _to_decimal(escrow_percent) / HUNDRED

    return FinancialBreakdown(
        application_fee_amount=application_fee,
        tax_amount=tax,
        escrow_amount=_cents(escrow),
    )
