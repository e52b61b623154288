from __future__ import annotations

from datetime import date
from decimal import Decimal

from builders import ACCOUNT, EUR, USD, cash, deposit, dividend, dividend_tax, reference_option_trades, stock, ts
from folio.services import CashMovementKind, MovementAggregate, RecalculatedMetrics, TradeCode, calculate_metrics


def _aggregate(movements, currency_id: int = USD, until: date = date(2024, 12, 31)) -> MovementAggregate:
    return MovementAggregate.build(ACCOUNT, currency_id, until, movements)


def test_zero_baseline_for_empty_aggregate():
    metrics = calculate_metrics(MovementAggregate.empty(ACCOUNT, USD, date(2024, 1, 1)), date(2024, 1, 1))

    assert metrics == RecalculatedMetrics.zero()
    assert metrics.is_zero_baseline


def test_cash_rules():
    movements = [
        deposit(ts(2024, 1, 2), "1000"),
        cash(ts(2024, 1, 3), CashMovementKind.ACAT_MONEY_TRANSFER, "500"),
        cash(ts(2024, 1, 4), CashMovementKind.WITHDRAWAL, "200", fees=Decimal("1")),
        cash(ts(2024, 1, 5), CashMovementKind.FEE, "5"),
        cash(ts(2024, 1, 6), CashMovementKind.INTEREST_GAINED, "3"),
        cash(ts(2024, 1, 7), CashMovementKind.LENDING, "2"),
        cash(ts(2024, 1, 8), CashMovementKind.INTEREST_PAID, "1.5"),
        cash(ts(2024, 1, 9), CashMovementKind.ACAT_SECURITIES_TRANSFER, "0"),
    ]

    metrics = calculate_metrics(_aggregate(movements), date(2024, 1, 31))

    assert metrics.deposited == Decimal("1500")
    assert metrics.withdrawn == Decimal("200")
    assert metrics.fees == Decimal("6")
    assert metrics.other_income == Decimal("3.5")
    assert metrics.movement_counter == 8
    assert metrics.net_cash_flow == Decimal("1500") - Decimal("200") - Decimal("6") + Decimal("3.5")


def test_target_date_limits_the_movements_counted():
    movements = [deposit(ts(2024, 1, 2), "100"), deposit(ts(2024, 1, 5), "50")]

    metrics = calculate_metrics(_aggregate(movements), date(2024, 1, 3))

    assert metrics.deposited == Decimal("100")
    assert metrics.movement_counter == 1


def test_conversion_counts_in_both_currencies():
    conversion = cash(
        ts(2024, 2, 1),
        CashMovementKind.CONVERSION,
        "90",
        currency_id=EUR,
        from_currency_id=USD,
        amount_changed=Decimal("100"),
    )
    movements = [deposit(ts(2024, 1, 2), "500"), conversion]

    usd = calculate_metrics(_aggregate(movements, USD), date(2024, 2, 1))
    eur = calculate_metrics(_aggregate(movements, EUR), date(2024, 2, 1))

    assert usd.deposited == Decimal("500")
    assert usd.withdrawn == Decimal("100")
    assert usd.movement_counter == 2
    assert eur.deposited == Decimal("90")
    assert eur.withdrawn == Decimal("0")
    assert eur.movement_counter == 1


def test_conversions_both_ways_are_netted_per_currency():
    movements = [
        cash(
            ts(2024, 2, 1),
            CashMovementKind.CONVERSION,
            "100",
            currency_id=USD,
            from_currency_id=EUR,
            amount_changed=Decimal("92"),
        ),
        cash(
            ts(2024, 2, 3),
            CashMovementKind.CONVERSION,
            "37",
            currency_id=EUR,
            from_currency_id=USD,
            amount_changed=Decimal("40"),
        ),
    ]

    usd = calculate_metrics(_aggregate(movements, USD), date(2024, 2, 3))
    eur = calculate_metrics(_aggregate(movements, EUR), date(2024, 2, 3))

    assert usd.deposited == Decimal("60")
    assert usd.withdrawn == Decimal("0")
    assert usd.net_cash_flow == Decimal("60")
    assert eur.deposited == Decimal("0")
    assert eur.withdrawn == Decimal("55")
    assert eur.movement_counter == 2


def test_dividends_are_net_of_tax():
    movements = [dividend(ts(2024, 3, 1), "10"), dividend_tax(ts(2024, 3, 1), "1.5")]

    metrics = calculate_metrics(_aggregate(movements), date(2024, 3, 1))

    assert metrics.dividends_received == Decimal("8.5")


def test_trades_and_options_are_combined():
    movements = [
        stock(ts(2024, 4, 1), TradeCode.BUY_TO_OPEN, "10", "10", commissions="1"),
        *reference_option_trades(),
    ]

    metrics = calculate_metrics(_aggregate(movements), date(2024, 5, 10))

    assert metrics.invested == Decimal("101") + Decimal("51.65")
    assert metrics.realized_gains == Decimal("23.65")
    assert metrics.options_income == Decimal("63")
    assert metrics.option_unrealized_gains == Decimal("14.86")
    assert metrics.commissions == Decimal("1") + Decimal("7")
    assert metrics.fees == Decimal("1.63")
    assert metrics.current_positions == {10: Decimal("10")}
    assert metrics.has_open_positions is True
    assert metrics.movement_counter == 13
