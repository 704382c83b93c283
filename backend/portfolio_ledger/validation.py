"""Contribution validation performed before any lot matching happens."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional

from .models import AssetCategory, Contribution, ZERO


class InvalidContributionError(ValueError):
    """Raised when a contribution record cannot be accounted for."""

    def __init__(self, field: str, reason: str, contribution_id: Optional[str] = None):
        self.field = field
        self.reason = reason
        self.contribution_id = contribution_id
        where = f" {contribution_id}" if contribution_id else ""
        super().__init__(f"Invalid contribution{where}: {field} {reason}")


def _to_decimal(value: Any, field: str, contribution_id: Optional[str]) -> Decimal:
    if value is None:
        raise InvalidContributionError(field, "is required", contribution_id)
    if isinstance(value, bool):
        raise InvalidContributionError(field, "must be numeric", contribution_id)
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidContributionError(field, f"is not a number: {value!r}", contribution_id) from exc
    else:
        raise InvalidContributionError(field, "must be numeric", contribution_id)
    if not parsed.is_finite():
        raise InvalidContributionError(field, "must be finite", contribution_id)
    return parsed


def _to_date(value: Any, contribution_id: Optional[str]) -> date:
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidContributionError(
                "contribution_date", f"is not an ISO date: {value!r}", contribution_id
            ) from exc
    raise InvalidContributionError("contribution_date", "is required", contribution_id)


def _to_category(value: Any, contribution_id: Optional[str]) -> AssetCategory:
    if value is None or value == "":
        return AssetCategory.OTHER
    try:
        return AssetCategory(str(value).upper())
    except ValueError as exc:
        raise InvalidContributionError("category", f"is unknown: {value!r}", contribution_id) from exc


def validate_contribution(contribution: Contribution) -> Contribution:
    """Check a constructed contribution and return it unchanged."""

    cid = contribution.contribution_id
    if not isinstance(contribution.category, AssetCategory):
        raise InvalidContributionError("category", "must be an AssetCategory", cid)
    if not isinstance(contribution.asset_name, str) or not contribution.asset_name.strip():
        raise InvalidContributionError("asset_name", "must be a non-empty string", cid)
    if not isinstance(contribution.contribution_date, date):
        raise InvalidContributionError("contribution_date", "must be a date or datetime", cid)
    when = contribution.contribution_date
    if isinstance(when, datetime) and when.tzinfo is not None:
        raise InvalidContributionError("contribution_date", "must be a naive local datetime", cid)

    for field in ("quantity", "gross_amount", "brokerage_fee"):
        value = getattr(contribution, field)
        if not isinstance(value, Decimal) or not value.is_finite():
            raise InvalidContributionError(field, "must be a finite Decimal", cid)
    if contribution.gross_amount < ZERO:
        raise InvalidContributionError("gross_amount", "must be >= 0", cid)
    if contribution.brokerage_fee < ZERO:
        raise InvalidContributionError("brokerage_fee", "must be >= 0", cid)

    price = contribution.current_price
    if price is not None:
        if not isinstance(price, Decimal) or not price.is_finite():
            raise InvalidContributionError("current_price", "must be a finite Decimal", cid)
        if price < ZERO:
            raise InvalidContributionError("current_price", "must be >= 0", cid)
    return contribution


def validate_contributions(contributions: Iterable[Contribution]) -> List[Contribution]:
    """Validate every record, failing on the first bad one."""

    return [validate_contribution(c) for c in contributions]


def contribution_from_mapping(raw: Mapping[str, Any]) -> Contribution:
    """Coerce a loosely typed record (JSON, CSV row) into a ``Contribution``."""

    cid = raw.get("contribution_id")
    cid = str(cid) if cid is not None else None
    price = raw.get("current_price")
    contribution = Contribution(
        category=_to_category(raw.get("category"), cid),
        asset_name=str(raw.get("asset_name") or "").strip(),
        quantity=_to_decimal(raw.get("quantity"), "quantity", cid),
        contribution_date=_to_date(raw.get("contribution_date"), cid),
        gross_amount=_to_decimal(raw.get("gross_amount"), "gross_amount", cid),
        brokerage_fee=_to_decimal(raw.get("brokerage_fee", 0) or 0, "brokerage_fee", cid),
        current_price=_to_decimal(price, "current_price", cid) if price not in (None, "") else None,
        contribution_id=cid,
        currency=raw.get("currency") or None,
    )
    return validate_contribution(contribution)


__all__ = [
    "InvalidContributionError",
    "contribution_from_mapping",
    "validate_contribution",
    "validate_contributions",
]
