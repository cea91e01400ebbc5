import pytest
from pydantic import ValidationError

from yield_advisor.models import PortfolioHolding, PortfolioSnapshot
from yield_advisor.services.portfolio import NATIVE_SYMBOL, analyze_portfolio


def holding(symbol, value_usd, mint=None, balance=1.0):
    return PortfolioHolding(symbol=symbol, mint=mint or f"{symbol}-mint", balance=balance, value_usd=value_usd)


def types(analysis):
    return [r.type for r in analysis.recommendations]


def test_concentrated_portfolio_without_stablecoins():
    snapshot = PortfolioSnapshot(sol_balance=10, tokens=[holding("BONK", 90)], nft_count=4)

    analysis = analyze_portfolio(snapshot)

    assert analysis.total_value == pytest.approx(100)
    assert analysis.token_count == 1
    assert analysis.nft_count == 4
    assert [(a.symbol, a.percentage) for a in analysis.allocations] == [
        ("BONK", pytest.approx(90)),
        (NATIVE_SYMBOL, pytest.approx(10)),
    ]
    assert types(analysis) == ["DIVERSIFICATION", "RISK_MANAGEMENT"]
    assert analysis.recommendations[0].priority == "HIGH"
    assert "BONK" in analysis.recommendations[0].description
    assert analysis.recommendations[1].priority == "MEDIUM"


def test_percentages_sum_to_100():
    snapshot = PortfolioSnapshot(
        sol_balance=33.3,
        tokens=[holding("USDC", 12.5), holding("RAY", 7.25), holding("JUP", 101.0)],
    )

    analysis = analyze_portfolio(snapshot)

    assert sum(a.percentage for a in analysis.allocations) == pytest.approx(100.0)
    percentages = [a.percentage for a in analysis.allocations]
    assert percentages == sorted(percentages, reverse=True)


def test_balanced_portfolio_triggers_nothing():
    snapshot = PortfolioSnapshot(
        sol_balance=30,
        tokens=[holding("USDC", 20), holding("USDT", 10), holding("RAY", 40)],
    )

    analysis = analyze_portfolio(snapshot)

    assert analysis.recommendations == []


def test_low_native_share_triggers_network_token():
    snapshot = PortfolioSnapshot(
        sol_balance=2,
        tokens=[holding("USDC", 30), holding("RAY", 34), holding("JUP", 34)],
    )

    analysis = analyze_portfolio(snapshot)

    assert types(analysis) == ["NETWORK_TOKEN"]
    assert analysis.recommendations[0].priority == "LOW"


def test_stablecoin_share_sums_all_listed_symbols():
    snapshot = PortfolioSnapshot(
        sol_balance=40,
        tokens=[holding("DAI", 4), holding("USDD", 4), holding("TUSD", 4), holding("RAY", 48)],
    )

    analysis = analyze_portfolio(snapshot)

    assert "RISK_MANAGEMENT" not in types(analysis)


def test_custom_stablecoin_set():
    snapshot = PortfolioSnapshot(sol_balance=40, tokens=[holding("PYUSD", 20), holding("RAY", 40)])

    assert "RISK_MANAGEMENT" in types(analyze_portfolio(snapshot))
    assert "RISK_MANAGEMENT" not in types(analyze_portfolio(snapshot, frozenset({"PYUSD"})))


def test_missing_value_counts_as_zero():
    snapshot = PortfolioSnapshot(sol_balance=50, tokens=[holding("DUST", None), holding("USDC", 50)])

    analysis = analyze_portfolio(snapshot)

    assert analysis.total_value == pytest.approx(100)
    dust = next(a for a in analysis.allocations if a.symbol == "DUST")
    assert dust.percentage == 0
    assert dust.value_usd == 0


def test_unknown_symbol_placeholder():
    snapshot = PortfolioSnapshot(sol_balance=1, tokens=[PortfolioHolding(mint="abc", value_usd=1)])

    analysis = analyze_portfolio(snapshot)

    assert {a.symbol for a in analysis.allocations} == {"Unknown", NATIVE_SYMBOL}


def test_zero_total_value_is_guarded():
    snapshot = PortfolioSnapshot(sol_balance=0, tokens=[holding("USDC", 0), holding("RAY", None)])

    analysis = analyze_portfolio(snapshot)

    assert analysis.total_value == 0
    assert all(a.percentage == 0 for a in analysis.allocations)
    assert len(analysis.allocations) == 3
    assert analysis.recommendations == []


def test_snapshot_accepts_upstream_field_names():
    snapshot = PortfolioSnapshot.model_validate(
        {"solBalance": 5, "tokens": [{"symbol": "USDC", "address": "EPj", "balance": 5, "valueUsd": 5}], "nftCount": 2}
    )

    assert snapshot.sol_balance == 5
    assert snapshot.tokens[0].mint == "EPj"
    assert snapshot.tokens[0].value_usd == 5
    assert snapshot.nft_count == 2


def test_negative_holding_value_is_rejected():
    with pytest.raises(ValidationError):
        PortfolioHolding(symbol="BAD", value_usd=-1)
