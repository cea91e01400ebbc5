from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


RiskTier = Literal["low", "medium", "high"]
RISK_LEVELS: Tuple[str, ...] = ("low", "medium", "high")

RecommendationType = Literal["DIVERSIFICATION", "RISK_MANAGEMENT", "NETWORK_TOKEN"]
RecommendationPriority = Literal["HIGH", "MEDIUM", "LOW"]


# Upstream DeFi data

class TokenInfo(BaseModel):
    address: str
    symbol: str = "Unknown"
    decimals: int = 0


class Pool(BaseModel):
    address: str = Field(..., description="Pool address, unique id")
    dex: str
    token_a: TokenInfo = Field(..., validation_alias=AliasChoices("token_a", "tokenA"))
    token_b: TokenInfo = Field(..., validation_alias=AliasChoices("token_b", "tokenB"))
    tvl: Optional[float] = None
    apy: Optional[float] = None
    volume_24h: Optional[float] = Field(default=None, validation_alias=AliasChoices("volume_24h", "volume24h"))

    @property
    def pair(self) -> str:
        return f"{self.token_a.symbol}-{self.token_b.symbol}"


class LiquidityDetails(BaseModel):
    tvl: float = Field(..., ge=0.0, description="Total value locked in USD")
    apy: float = Field(..., ge=0.0, description="APY in %")
    volume_24h: float = Field(..., ge=0.0, validation_alias=AliasChoices("volume_24h", "volume24h"))
    fee_24h: float = Field(..., ge=0.0, validation_alias=AliasChoices("fee_24h", "fee24h"))


class EnrichedPool(BaseModel):
    pool: Pool
    details: LiquidityDetails


class InvestmentOpportunity(BaseModel):
    pool: Pool
    expected_yield: float = Field(..., description="Expected yield (pool APY) in %")
    risk: RiskTier
    recommendation: str


# Allocation strategy

class TokenAllocation(BaseModel):
    token: str
    symbol: str
    category: str
    percentage: float = Field(..., ge=0.0, le=100.0)
    amount_usd: float
    reason: str


class CategoryMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    symbol: str
    weight: float = Field(..., ge=0.0)


class AssetCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    members: Tuple[CategoryMember, ...]


class AllocationTable(BaseModel):
    """Category membership plus the per-profile category weights (all in %)."""

    model_config = ConfigDict(frozen=True)

    categories: Tuple[AssetCategory, ...]
    profile_weights: Dict[str, Dict[str, float]]

    @model_validator(mode="after")
    def _weights_sum_to_100(self) -> "AllocationTable":
        names = {c.name for c in self.categories}
        for category in self.categories:
            total = sum(m.weight for m in category.members)
            if abs(total - 100.0) > 1e-9:
                raise ValueError(f"Member weights of category '{category.name}' sum to {total}, expected 100")
        for profile, weights in self.profile_weights.items():
            if set(weights) != names:
                raise ValueError(f"Profile '{profile}' must weight exactly the categories {sorted(names)}")
            total = sum(weights.values())
            if abs(total - 100.0) > 1e-9:
                raise ValueError(f"Category weights of profile '{profile}' sum to {total}, expected 100")
        return self


class RiskThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    low_min_tvl: float = 1_000_000
    low_max_apy: float = 30
    medium_min_tvl: float = 500_000
    medium_max_apy: float = 100


# Portfolio

class PortfolioHolding(BaseModel):
    symbol: Optional[str] = None
    mint: Optional[str] = Field(default=None, validation_alias=AliasChoices("mint", "address"))
    balance: float = 0.0
    value_usd: Optional[float] = Field(default=None, ge=0.0, validation_alias=AliasChoices("value_usd", "valueUsd"))


class PortfolioSnapshot(BaseModel):
    sol_balance: float = Field(default=0.0, ge=0.0, validation_alias=AliasChoices("sol_balance", "solBalance"))
    tokens: List[PortfolioHolding] = Field(default_factory=list)
    nft_count: int = Field(default=0, ge=0, validation_alias=AliasChoices("nft_count", "nftCount"))


class PortfolioAllocationView(BaseModel):
    symbol: str
    mint: Optional[str] = None
    value_usd: float
    percentage: float


class PortfolioRecommendation(BaseModel):
    type: RecommendationType
    title: str
    description: str
    priority: RecommendationPriority


class PortfolioAnalysis(BaseModel):
    total_value: float
    token_count: int
    nft_count: int
    allocations: List[PortfolioAllocationView]
    recommendations: List[PortfolioRecommendation]


class HoldingOpportunities(BaseModel):
    symbol: str
    token_address: str
    balance: float
    balance_usd: float
    opportunities: List[InvestmentOpportunity]


class YieldFarmingOpportunity(BaseModel):
    pool: Pool
    apy: float
    tvl: float
    risk: RiskTier
    expected_yield: float = Field(..., description="Yearly yield on the invested amount, in USD")


class ImpermanentLossResponse(BaseModel):
    initial_ratio: float
    current_ratio: float
    impermanent_loss_percent: float
