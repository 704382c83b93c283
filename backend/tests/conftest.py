import asyncio
import inspect
import pathlib
import sys
from datetime import date
from decimal import Decimal

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio_ledger import AssetCategory, Contribution  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**pyfuncitem.funcargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


def make_contribution(
    quantity,
    gross_amount,
    when: date,
    *,
    asset: str = "PETR4",
    category: AssetCategory = AssetCategory.STOCK_BR,
    fee="0",
    price=None,
    contribution_id: str | None = None,
    currency: str | None = None,
) -> Contribution:
    """Shorthand for building contributions from plain numbers."""

    return Contribution(
        category=category,
        asset_name=asset,
        quantity=Decimal(str(quantity)),
        contribution_date=when,
        gross_amount=Decimal(str(gross_amount)),
        brokerage_fee=Decimal(str(fee)),
        current_price=Decimal(str(price)) if price is not None else None,
        contribution_id=contribution_id,
        currency=currency,
    )


@pytest.fixture
def contribution():
    return make_contribution
