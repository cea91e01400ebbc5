from __future__ import annotations

from typing import List

from yield_advisor.errors import InvalidInput
from yield_advisor.models import AllocationTable, AssetCategory, CategoryMember, TokenAllocation


DEFAULT_ALLOCATION_TABLE = AllocationTable(
    categories=(
        AssetCategory(
            name="stablecoin",
            label="stablecoin",
            members=(
                CategoryMember(token="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", symbol="USDC", weight=70),
                CategoryMember(token="Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", symbol="USDT", weight=30),
            ),
        ),
        AssetCategory(
            name="blue_chip",
            label="blue chip",
            members=(
                CategoryMember(token="So11111111111111111111111111111111111111112", symbol="SOL", weight=40),
                CategoryMember(token="7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj", symbol="BTC", weight=30),
                CategoryMember(token="2FPyTwcZLUg1MDrwsyoP4D6s1tM7hAkHYRjkNb5w6Pxk", symbol="ETH", weight=30),
            ),
        ),
        AssetCategory(
            name="mid_cap",
            label="mid cap",
            members=(
                CategoryMember(token="AfXLBfMZd32pN6QauazHCd7diEPbpL5SgXwBJFrpZSHC", symbol="MATIC", weight=25),
                CategoryMember(token="EPeUFDgHRxs9xxEPVaL6kfGQvCon7jmAWKVUHuux1Tpz", symbol="OP", weight=25),
                CategoryMember(token="kinXdEcpDQeHPEuQnqmUgtYykqKGVFq6CeVX5iAHJq6", symbol="KIN", weight=25),
                CategoryMember(token="RLBxxFkseAZ4RgJH3Sqn8jXxhmGoz9jWxDNJMh8pL7a", symbol="RAY", weight=25),
            ),
        ),
        AssetCategory(
            name="high_risk",
            label="high risk",
            members=(
                CategoryMember(token="CiKu4eHsVrc1eueVQeHn7qhXTcVu95gSQmBpX4utjL9z", symbol="FIDA", weight=30),
                CategoryMember(token="MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey", symbol="MSOL", weight=40),
                CategoryMember(token="mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So", symbol="MNGO", weight=30),
            ),
        ),
    ),
    profile_weights={
        "low": {"stablecoin": 60, "blue_chip": 30, "mid_cap": 10, "high_risk": 0},
        "medium": {"stablecoin": 40, "blue_chip": 30, "mid_cap": 20, "high_risk": 10},
        "high": {"stablecoin": 20, "blue_chip": 30, "mid_cap": 30, "high_risk": 20},
    },
)


def build_allocation_strategy(
    risk_profile: str,
    investment_amount: float,
    table: AllocationTable = DEFAULT_ALLOCATION_TABLE,
) -> List[TokenAllocation]:
    weights = table.profile_weights.get(risk_profile)
    if weights is None:
        raise InvalidInput(f"Unknown risk profile '{risk_profile}', expected one of {sorted(table.profile_weights)}")
    if investment_amount < 0:
        raise InvalidInput("Investment amount must be >= 0")

    allocations: List[TokenAllocation] = []
    for category in table.categories:
        category_weight = weights[category.name]
        for member in category.members:
            percentage = category_weight * member.weight / 100.0
            amount = investment_amount * percentage / 100.0
            allocations.append(
                TokenAllocation(
                    token=member.token,
                    symbol=member.symbol,
                    category=category.name,
                    percentage=percentage,
                    amount_usd=amount,
                    reason=(
                        f"{member.symbol} allocated at {percentage:.2f}% (${amount:,.2f}) as part of the "
                        f"{category.label} allocation for a {risk_profile} risk profile strategy."
                    ),
                )
            )
    return allocations
