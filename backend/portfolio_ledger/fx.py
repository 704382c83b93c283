"""Convert contributions into the reporting currency before accounting."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from .models import Contribution

DEFAULT_REPORTING_CURRENCY = "BRL"


class MissingFXRateError(LookupError):
    """No rate is available for a currency pair on a given day."""


@dataclass
class FXRateProvider:
    """Daily conversion rates keyed by ``(day, from_currency, to_currency)``.

    A pair quoted only in the opposite direction is used through its inverse.
    """

    rates: Dict[Tuple[date, str, str], Decimal]
    base_currency: str = DEFAULT_REPORTING_CURRENCY

    def rate(self, d: date, from_currency: str, to_currency: str | None = None) -> Decimal:
        source = from_currency.upper()
        target = (to_currency or self.base_currency).upper()
        if source == target:
            return Decimal("1")
        direct = self.rates.get((d, source, target))
        if direct is not None:
            return direct
        inverse = self.rates.get((d, target, source))
        if inverse:
            return Decimal("1") / inverse
        raise MissingFXRateError(f"Missing FX rate for {source}->{target} on {d.isoformat()}")


def to_reporting_currency(
    contributions: Iterable[Contribution],
    provider: FXRateProvider,
    reporting_currency: str | None = None,
) -> List[Contribution]:
    """Return copies of ``contributions`` with money fields in one currency.

    Records without a currency are assumed to be in the reporting currency
    already. Rates are looked up on the contribution's calendar day.
    """

    target = (reporting_currency or provider.base_currency).upper()
    converted: List[Contribution] = []
    for contribution in contributions:
        currency = contribution.currency
        if not currency or currency.upper() == target:
            converted.append(contribution)
            continue
        day = contribution.occurred_at.date()
        rate = provider.rate(day, currency, target)
        price = contribution.current_price
        converted.append(
            replace(
                contribution,
                gross_amount=contribution.gross_amount * rate,
                brokerage_fee=contribution.brokerage_fee * rate,
                current_price=price * rate if price is not None else None,
                currency=target,
            )
        )
    return converted


__all__ = [
    "DEFAULT_REPORTING_CURRENCY",
    "FXRateProvider",
    "MissingFXRateError",
    "to_reporting_currency",
]
