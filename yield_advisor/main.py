from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from yield_advisor.clients.shyft import ShyftDeFiClient, ShyftWalletClient
from yield_advisor.config import get_settings
from yield_advisor.errors import InvalidInput, MalformedPayload, UpstreamUnavailable
from yield_advisor.http import HttpClient
from yield_advisor.models import (
    HoldingOpportunities,
    ImpermanentLossResponse,
    InvestmentOpportunity,
    PortfolioAnalysis,
    PortfolioSnapshot,
    TokenAllocation,
    YieldFarmingOpportunity,
)
from yield_advisor.services.engine import RecommendationEngine
from yield_advisor.services.risk import calculate_impermanent_loss
from yield_advisor.utils.logging import setup_logging
from yield_advisor.utils.loki import loki_request_logger

app = FastAPI(title="Yield Advisor", version="1.0.0")

logger = logging.getLogger(__name__)

SETTINGS = get_settings()


def get_engine(request: Request) -> RecommendationEngine:
    return request.app.state.engine


@app.on_event("startup")
async def startup_event() -> None:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    app.state.http = HttpClient(timeout=settings.HTTP_TIMEOUT_SECONDS, retries=settings.HTTP_RETRY_ATTEMPTS)
    app.state.engine = RecommendationEngine(
        ShyftDeFiClient(app.state.http, settings),
        ShyftWalletClient(app.state.http, settings),
        concurrency=settings.FANOUT_CONCURRENCY,
    )
    if not settings.SHYFT_API_KEY:
        logger.warning("SHYFT_API_KEY is not set; upstream calls will be rejected")
    logger.info("Yield Advisor ready")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if getattr(app.state, "http", None):
        await app.state.http.aclose()


if SETTINGS.ENABLE_LOKI:
    app.middleware("http")(loki_request_logger)


@app.exception_handler(InvalidInput)
async def _invalid_input(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(UpstreamUnavailable)
async def _upstream_unavailable(request: Request, exc: UpstreamUnavailable):
    logger.warning(f"Upstream unavailable on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(MalformedPayload)
async def _malformed_payload(request: Request, exc: MalformedPayload):
    logger.warning(f"Malformed upstream payload on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/defi/recommendations", response_model=List[InvestmentOpportunity])
async def get_recommendations(
    tokens: List[str] = Query(..., min_length=1),
    risk_profile: Literal["low", "medium", "high"] = "medium",
    limit: int = Query(SETTINGS.DEFAULT_RECOMMENDATION_LIMIT, ge=1, le=50),
    dex: Optional[List[str]] = Query(None),
    page: int = Query(SETTINGS.DEFAULT_POOL_PAGE, ge=1),
    page_limit: int = Query(SETTINGS.DEFAULT_POOL_LIMIT, ge=1, le=100),
    engine: RecommendationEngine = Depends(get_engine),
):
    return await engine.rank_opportunities(
        tokens, risk_profile, limit, dex=dex, page=page, page_limit=page_limit
    )


@app.get("/api/defi/pairs", response_model=List[InvestmentOpportunity])
async def get_pair_recommendations(
    token_a: str = Query(..., min_length=1),
    token_b: str = Query(..., min_length=1),
    risk_profile: Literal["low", "medium", "high"] = "medium",
    limit: int = Query(SETTINGS.DEFAULT_RECOMMENDATION_LIMIT, ge=1, le=50),
    dex: Optional[List[str]] = Query(None),
    page: int = Query(SETTINGS.DEFAULT_POOL_PAGE, ge=1),
    page_limit: int = Query(SETTINGS.DEFAULT_POOL_LIMIT, ge=1, le=100),
    engine: RecommendationEngine = Depends(get_engine),
):
    return await engine.rank_pair_opportunities(
        token_a, token_b, risk_profile, limit, dex=dex, page=page, page_limit=page_limit
    )


@app.get("/api/defi/top-pools", response_model=List[InvestmentOpportunity])
async def get_top_pools(
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["apy", "tvl", "volume24h"] = "apy",
    engine: RecommendationEngine = Depends(get_engine),
):
    return await engine.top_pools(limit, sort_by)


@app.get("/api/defi/yield-farming", response_model=List[YieldFarmingOpportunity])
async def get_yield_farming(
    base_token: str = Query(..., min_length=1),
    amount: float = Query(..., ge=0.0),
    min_apy: float = Query(5.0, ge=0.0),
    engine: RecommendationEngine = Depends(get_engine),
):
    return await engine.find_yield_farming(amount, base_token, min_apy)


@app.get("/api/defi/pools/{address}", response_model=InvestmentOpportunity)
async def get_pool(address: str, engine: RecommendationEngine = Depends(get_engine)):
    return await engine.describe_pool(address)


@app.get("/api/defi/impermanent-loss", response_model=ImpermanentLossResponse)
async def get_impermanent_loss(
    initial_ratio: float = Query(..., gt=0.0),
    current_ratio: float = Query(..., gt=0.0),
):
    return ImpermanentLossResponse(
        initial_ratio=initial_ratio,
        current_ratio=current_ratio,
        impermanent_loss_percent=calculate_impermanent_loss(initial_ratio, current_ratio),
    )


@app.post("/api/portfolio/analyze", response_model=PortfolioAnalysis)
async def post_analyze_portfolio(snapshot: PortfolioSnapshot, engine: RecommendationEngine = Depends(get_engine)):
    return engine.analyze_portfolio(snapshot)


@app.get("/api/portfolio/{wallet_address}/analysis", response_model=PortfolioAnalysis)
async def get_wallet_analysis(wallet_address: str, engine: RecommendationEngine = Depends(get_engine)):
    return await engine.analyze_wallet(wallet_address)


@app.get("/api/portfolio/{wallet_address}/opportunities", response_model=List[HoldingOpportunities])
async def get_wallet_opportunities(
    wallet_address: str,
    per_token: int = Query(3, ge=1, le=10),
    engine: RecommendationEngine = Depends(get_engine),
):
    return await engine.find_yield_opportunities(wallet_address, per_token)


@app.get("/api/strategy/allocation", response_model=List[TokenAllocation])
async def get_allocation_strategy(
    risk_profile: Literal["low", "medium", "high"] = "medium",
    amount: float = Query(1000.0, ge=0.0),
    engine: RecommendationEngine = Depends(get_engine),
):
    return engine.build_allocation_strategy(risk_profile, amount)
