"""Time-series reconstruction tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from portfolio_ledger import AssetCategory, PriceSource, Resolution, build_evolution_series
from portfolio_ledger.evolution import (
    build_grid,
    downsample_step,
    resolve_period_start,
    resolve_resolution,
)

AS_OF = datetime(2024, 1, 10, 12, 0)


def _portfolio(contribution):
    return [
        contribution(10, 100, date(2024, 1, 1), price=11),
        contribution(-4, 60, date(2024, 1, 3), price=15),
        contribution(1, 200, date(2024, 1, 2), asset="BTC", category=AssetCategory.CRYPTO),
    ]


def test_empty_contributions_return_none():
    assert build_evolution_series([], date(2024, 1, 1), date(2024, 1, 2), as_of=AS_OF) is None


def test_twelve_hour_window_uses_two_hour_steps(contribution):
    start = datetime(2024, 1, 1, 0, 0)
    series = build_evolution_series(
        [contribution(1, 10, date(2024, 1, 1))],
        start,
        start + timedelta(hours=12),
        as_of=AS_OF,
    )
    assert series.resolution == Resolution.TWO_HOURS
    assert len(series) == 7
    assert series.labels[:3] == ["00:00", "02:00", "04:00"]
    assert series.labels[-1] == "12:00"


def test_ninety_day_window_uses_daily_steps(contribution):
    series = build_evolution_series(
        [contribution(1, 10, date(2024, 1, 1))],
        date(2024, 1, 1),
        date(2024, 3, 31),
        as_of=AS_OF,
    )
    assert series.resolution == Resolution.DAILY
    assert len(series) == 91
    steps = {b.timestamp - a.timestamp for a, b in zip(series.points, series.points[1:])}
    assert steps == {timedelta(days=1)}
    assert series.labels[0] == "01/01"


def test_replay_values_per_tick(contribution):
    series = build_evolution_series(
        _portfolio(contribution), date(2024, 1, 1), date(2024, 1, 4), as_of=AS_OF
    )
    assert series.invested == [Decimal("100"), Decimal("300"), Decimal("260"), Decimal("260")]
    assert series.current == [Decimal("110"), Decimal("310"), Decimal("290"), Decimal("290")]


def test_unpriced_asset_is_valued_at_cost(contribution):
    series = build_evolution_series(
        _portfolio(contribution), date(2024, 1, 1), date(2024, 1, 4), as_of=AS_OF
    )
    sources = series.points[-1].price_sources
    assert {str(k): v for k, v in sources.items()} == {
        "STOCK_BR_PETR4": PriceSource.MARKET,
        "CRYPTO_BTC": PriceSource.COST_PROXY,
    }


def test_category_series_are_zero_filled(contribution):
    series = build_evolution_series(
        _portfolio(contribution), date(2024, 1, 1), date(2024, 1, 4), as_of=AS_OF
    )
    categories = series.category_series()
    assert categories[AssetCategory.STOCK_BR]["invested"] == [
        Decimal("100"),
        Decimal("100"),
        Decimal("60"),
        Decimal("60"),
    ]
    assert categories[AssetCategory.CRYPTO]["current"] == [
        Decimal("0"),
        Decimal("200"),
        Decimal("200"),
        Decimal("200"),
    ]


def test_final_tick_uses_latest_price_from_all_contributions(contribution):
    trades = [
        contribution(10, 100, date(2024, 1, 1), price=10),
        contribution(1, 20, date(2024, 2, 1), price=20),
    ]
    series = build_evolution_series(trades, date(2024, 1, 1), date(2024, 1, 3), as_of=AS_OF)
    assert series.current[:2] == [Decimal("100"), Decimal("100")]
    # The February price is applied to the ten units held on the last tick
    assert series.current[-1] == Decimal("200")
    assert series.invested[-1] == Decimal("100")


def test_tick_on_as_of_day_is_refreshed(contribution):
    trades = [
        contribution(10, 100, date(2024, 1, 1), price=10),
        contribution(1, 20, date(2024, 1, 20), price=30),
    ]
    series = build_evolution_series(
        trades, date(2024, 1, 1), date(2024, 1, 5), as_of=datetime(2024, 1, 3, 9, 0)
    )
    assert series.current == [
        Decimal("100"),
        Decimal("100"),
        Decimal("300"),
        Decimal("300"),
        Decimal("300"),
    ]


def test_closed_positions_drop_out(contribution):
    trades = [
        contribution(5, 50, date(2024, 1, 1), price=12),
        contribution(-5, 60, date(2024, 1, 2)),
    ]
    series = build_evolution_series(trades, date(2024, 1, 1), date(2024, 1, 3), as_of=AS_OF)
    assert series.invested == [Decimal("50"), Decimal("0"), Decimal("0")]
    assert series.current == [Decimal("60"), Decimal("0"), Decimal("0")]


def test_reopened_position_keeps_last_known_price(contribution):
    trades = [
        contribution(5, 50, date(2024, 1, 1), price=20),
        contribution(-5, 100, date(2024, 1, 2)),
        contribution(5, 50, date(2024, 1, 3)),
    ]
    series = build_evolution_series(trades, date(2024, 1, 1), date(2024, 1, 4), as_of=AS_OF)
    assert series.current == [Decimal("100"), Decimal("0"), Decimal("100"), Decimal("100")]
    reopened = series.points[2]
    assert [source for source in reopened.price_sources.values()] == [PriceSource.MARKET]


def test_intraday_grid_ends_on_range_end(contribution):
    trades = [contribution(1, 10, datetime(2024, 1, 1, 4, 30))]
    series = build_evolution_series(
        trades, datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 5, 0), as_of=AS_OF
    )
    assert series.labels == ["00:00", "02:00", "04:00", "05:00"]
    assert series.invested == [0, 0, 0, Decimal("10")]
    assert series.points[-1].timestamp == datetime(2024, 1, 1, 5, 0)


def test_intraday_contributions_apply_at_their_time(contribution):
    trades = [contribution(2, 40, datetime(2024, 1, 1, 9, 0), price=25)]
    series = build_evolution_series(
        trades, datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 12, 0), as_of=AS_OF
    )
    by_label = dict(zip(series.labels, series.invested))
    assert by_label["08:00"] == 0
    assert by_label["10:00"] == Decimal("40")
    assert series.current[-1] == Decimal("50")


def test_invalid_records_are_reported_not_raised(contribution):
    trades = [
        contribution(10, 100, date(2024, 1, 1)),
        contribution(1, -5, date(2024, 1, 2), contribution_id="bad-1"),
    ]
    series = build_evolution_series(trades, date(2024, 1, 1), date(2024, 1, 3), as_of=AS_OF)
    assert series.invested == [Decimal("100")] * 3
    assert len(series.rejected) == 1
    assert series.rejected[0].contribution_id == "bad-1"


def test_oversell_is_reported_as_warning(contribution):
    trades = [
        contribution(2, 20, date(2024, 1, 1)),
        contribution(-3, 45, date(2024, 1, 2)),
    ]
    series = build_evolution_series(trades, date(2024, 1, 1), date(2024, 1, 2), as_of=AS_OF)
    assert series.warnings[0].unmatched_quantity == Decimal("1")
    assert series.invested[-1] == 0


def test_reversed_and_missing_bounds(contribution):
    trades = [contribution(1, 10, date(2024, 1, 1))]
    swapped = build_evolution_series(trades, date(2024, 1, 5), date(2024, 1, 1), as_of=AS_OF)
    assert swapped.start == datetime(2024, 1, 1)
    assert len(swapped) == 5

    anchored = build_evolution_series(trades, date(2024, 1, 8), None, as_of=AS_OF)
    assert anchored.end == AS_OF
    assert anchored.labels[-1] == "10/01"


def test_long_ranges_label_years_and_downsample(contribution):
    trades = [contribution(1, 10, date(2020, 1, 1))]
    series = build_evolution_series(
        trades, date(2020, 1, 1), date(2023, 1, 1), as_of=AS_OF, max_points=200
    )
    assert series.labels[0] == "01/01/2020"
    assert series.points[-1].timestamp == datetime(2023, 1, 1)
    assert len(series) < 200


def test_resolution_boundary():
    start = datetime(2024, 1, 1)
    assert resolve_resolution(start, start + timedelta(hours=24)) == Resolution.TWO_HOURS
    assert resolve_resolution(start, start + timedelta(hours=25)) == Resolution.DAILY


def test_downsample_step_rounding():
    assert downsample_step(90, None) == 1
    assert downsample_step(400, 200) == 1
    assert downsample_step(1000, 200) == 3
    assert downsample_step(3650, 200) == 14
    assert downsample_step(20000, 200) == 60


def test_daily_grid_always_ends_on_last_day():
    grid = build_grid(datetime(2024, 1, 1), datetime(2024, 1, 11), Resolution.DAILY, day_step=3)
    assert grid[-1] == datetime(2024, 1, 11)
    assert grid[-2] == datetime(2024, 1, 10)


def test_period_presets(contribution):
    end = date(2024, 3, 31)
    assert resolve_period_start("1M", end) == date(2024, 2, 29)
    assert resolve_period_start("6M", end) == date(2023, 9, 30)
    assert resolve_period_start("YTD", end) == date(2024, 1, 1)
    assert resolve_period_start("5Y", end) == date(2019, 3, 31)
    assert resolve_period_start("1W", end) == date(2024, 3, 24)
    assert resolve_period_start("bogus", end) == date(2024, 2, 29)
    trades = [contribution(1, 10, date(2022, 5, 4)), contribution(1, 10, date(2021, 7, 9))]
    assert resolve_period_start("ALL", end, trades) == date(2021, 7, 9)
    assert resolve_period_start("ALL", end) == date(2024, 2, 29)

    now = datetime(2024, 3, 31, 15, 30)
    assert resolve_period_start("1D", now) == datetime(2024, 3, 30, 15, 30)


def test_timezone_aware_inputs(contribution):
    trades = [contribution(1, 10, date(2024, 1, 1))]
    with pytest.raises(ValueError):
        build_evolution_series(trades, as_of=AS_OF.replace(tzinfo=timezone.utc))

    aware_start = datetime(2024, 1, 8, tzinfo=timezone.utc)
    series = build_evolution_series(trades, aware_start, None, as_of=AS_OF)
    assert series.start == AS_OF
    assert series.end == AS_OF

    aware_record = contribution(1, 10, datetime(2024, 1, 2, 1, 0, tzinfo=timezone.utc))
    series = build_evolution_series(
        [trades[0], aware_record], date(2024, 1, 1), date(2024, 1, 3), as_of=AS_OF
    )
    assert series.rejected[0].field == "contribution_date"
