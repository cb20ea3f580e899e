"""Portfolio analysis models -- holdings valued at simulated live prices."""

from __future__ import annotations

from pydantic import BaseModel, Field


class HoldingValuation(BaseModel):
    """A single holding valued at its current live price."""

    symbol: str
    shares: int
    avg_buy_price: float
    live_price: float
    sector: str
    cost_basis: float
    current_value: float
    pnl: float
    pnl_percent: float
    allocation_percent: float = 0.0


class RiskLevel(BaseModel):
    label: str
    description: str


class PortfolioAnalysis(BaseModel):
    """Summarized view of a portfolio at the moment of analysis."""

    holdings: list[HoldingValuation] = Field(default_factory=list)
    total_value: float = 0.0
    cost_basis: float = 0.0
    total_pnl: float = 0.0
    total_pnl_percent: float = 0.0
    sector_allocation: dict[str, float] = Field(default_factory=dict)
    sector_count: int = 0
    diversification_score: int = 0
    risk_score: int = 50
    risk_level: RiskLevel
