import pytest
from fastapi.testclient import TestClient

from conftest import FakeDeFiProvider, FakePortfolioProvider, make_details, make_pool
from yield_advisor.errors import UpstreamUnavailable
from yield_advisor.main import app, get_engine
from yield_advisor.models import PortfolioHolding, PortfolioSnapshot
from yield_advisor.services.engine import RecommendationEngine


@pytest.fixture
def engine():
    defi = FakeDeFiProvider(
        pools_by_token={
            "So111": [make_pool("p1"), make_pool("p2")],
            "EPj": [make_pool("p2"), make_pool("p3")],
        },
        details={
            "p1": make_details(2_000_000, 12),
            "p2": make_details(700_000, 55),
            "p3": make_details(1_000, 300),
        },
        pools_by_pair={("So111", "EPj"): [make_pool("p1"), make_pool("p3")]},
        top_pools=[make_pool("p3"), make_pool("p1")],
    )
    wallet = FakePortfolioProvider(
        PortfolioSnapshot(sol_balance=10, tokens=[PortfolioHolding(symbol="USDC", mint="EPj", balance=90, value_usd=90)])
    )
    return RecommendationEngine(defi, wallet)


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_recommendations(client):
    resp = client.get("/api/defi/recommendations", params={"tokens": ["So111", "EPj"], "risk_profile": "medium", "limit": 5})

    assert resp.status_code == 200
    body = resp.json()
    assert [o["pool"]["address"] for o in body] == ["p2", "p1"]
    assert [o["risk"] for o in body] == ["medium", "low"]
    assert body[0]["pool"]["token_a"]["symbol"] == "SOL"


def test_recommendations_require_tokens(client):
    assert client.get("/api/defi/recommendations").status_code == 422


def test_recommendations_reject_unknown_profile(client):
    resp = client.get("/api/defi/recommendations", params={"tokens": ["So111"], "risk_profile": "wild"})

    assert resp.status_code == 422


def test_pool_lookup(client):
    resp = client.get("/api/defi/pools/p3")

    assert resp.status_code == 200
    assert resp.json()["risk"] == "high"


def test_pool_lookup_unknown_pool_is_bad_gateway(client):
    resp = client.get("/api/defi/pools/nope")

    assert resp.status_code == 502
    assert "error" in resp.json()


def test_impermanent_loss(client):
    resp = client.get("/api/defi/impermanent-loss", params={"initial_ratio": 1, "current_ratio": 4})

    assert resp.status_code == 200
    assert resp.json()["impermanent_loss_percent"] == pytest.approx(-20.0)


def test_analyze_posted_snapshot(client):
    resp = client.post("/api/portfolio/analyze", json={"solBalance": 10, "tokens": [{"symbol": "JUP", "valueUsd": 90}]})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_value"] == pytest.approx(100)
    assert [r["type"] for r in body["recommendations"]] == ["DIVERSIFICATION", "RISK_MANAGEMENT"]


def test_wallet_analysis(client, wallet_address):
    resp = client.get(f"/api/portfolio/{wallet_address}/analysis")

    assert resp.status_code == 200
    assert resp.json()["allocations"][0]["symbol"] == "USDC"


def test_wallet_analysis_invalid_address(client):
    resp = client.get("/api/portfolio/not-a-wallet/analysis")

    assert resp.status_code == 400


def test_wallet_analysis_upstream_down(engine, client, wallet_address):
    engine.wallet.error = UpstreamUnavailable("wallet api down")

    resp = client.get(f"/api/portfolio/{wallet_address}/analysis")

    assert resp.status_code == 502
    assert resp.json() == {"error": "wallet api down"}


def test_wallet_opportunities(client, wallet_address):
    resp = client.get(f"/api/portfolio/{wallet_address}/opportunities")

    assert resp.status_code == 200
    body = resp.json()
    assert [h["symbol"] for h in body] == ["USDC"]
    assert [o["pool"]["address"] for o in body[0]["opportunities"]] == ["p3", "p2"]


def test_allocation_strategy(client):
    resp = client.get("/api/strategy/allocation", params={"risk_profile": "high", "amount": 2_000})

    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 12
    assert sum(a["percentage"] for a in body) == pytest.approx(100)


def test_pair_recommendations(client):
    resp = client.get("/api/defi/pairs", params={"token_a": "So111", "token_b": "EPj", "risk_profile": "high"})

    assert resp.status_code == 200
    assert [o["pool"]["address"] for o in resp.json()] == ["p3", "p1"]


def test_top_pools(client):
    resp = client.get("/api/defi/top-pools", params={"limit": 2, "sort_by": "tvl"})

    assert resp.status_code == 200
    assert [o["pool"]["address"] for o in resp.json()] == ["p3", "p1"]


def test_top_pools_reject_unknown_sort_key(client):
    assert client.get("/api/defi/top-pools", params={"sort_by": "fees"}).status_code == 422


def test_yield_farming(client):
    resp = client.get("/api/defi/yield-farming", params={"base_token": "So111", "amount": 1_000, "min_apy": 10})

    assert resp.status_code == 200
    body = resp.json()
    assert [o["pool"]["address"] for o in body] == ["p2", "p1"]
    assert [o["expected_yield"] for o in body] == pytest.approx([550, 120])
