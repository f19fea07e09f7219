"""Suggestion and analysis result models."""

from enum import Enum

from pydantic import ConfigDict, Field, computed_field

from searchterm_intel.models.base import BaseSTIModel, MetricTotals, Priority
from searchterm_intel.models.performance import (
    MatchType,
    NegationScope,
    NegativeMatchType,
    TargetingType,
)


class WordRoot(MetricTotals):
    """An n-gram of 1-3 normalized tokens aggregated over many queries."""

    model_config = ConfigDict(frozen=True)

    root: str = Field(..., description="Space-joined normalized tokens")
    n: int = Field(..., ge=1, le=3, description="Number of tokens in the root")
    frequency: int = Field(..., ge=0, description="Contributing query count")
    queries: tuple[str, ...] = Field(
        default=(), description="Distinct contributing queries in first-seen order"
    )

    @property
    def key(self) -> tuple[str, int]:
        return (self.root, self.n)


class NegativeSuggestion(BaseSTIModel):
    """A word root judged worth adding as a negative keyword."""

    model_config = ConfigDict(frozen=True)

    root: str
    n: int = Field(..., ge=1, le=3)
    match_type: NegativeMatchType = Field(
        ..., description="Phrase for multi-word roots, exact for single words"
    )
    reason_code: str = Field(..., description="Which classification rule matched")
    reason: str = Field(..., description="Human-readable explanation")
    priority: Priority
    frequency: int
    spend: float
    clicks: int
    orders: int
    acos: float
    affected_queries: tuple[str, ...] = Field(
        default=(), description="Capped sample of contributing queries"
    )
    estimated_savings: float

    @property
    def suggestion_id(self) -> str:
        return f"negative:{self.root}"


class MigrationSuggestion(BaseSTIModel):
    """A query recommended to move to a tighter match type."""

    model_config = ConfigDict(frozen=True)

    query: str
    campaign_id: str
    campaign_name: str = ""
    source_match_type: MatchType
    target_match_type: MatchType
    recommended_bid: float = Field(..., ge=0.0)
    current_cpc: float = Field(..., ge=0.0)
    clicks: int
    orders: int
    spend: float
    sales: float
    roas: float
    cvr: float
    priority: Priority
    reason: str
    negation_required: bool
    negation_scope: NegationScope | None = None
    ad_group_ids: tuple[str, ...] = Field(
        default=(), description="Ad groups in the source campaign that served the query"
    )

    @property
    def suggestion_id(self) -> str:
        return f"migration:{self.campaign_id}:{self.source_match_type}:{self.query}"


class CampaignPerformance(MetricTotals):
    """Summary of one campaign competing for a query."""

    model_config = ConfigDict(frozen=True)

    campaign_id: str
    campaign_name: str = ""
    campaign_type: str | None = None
    targeting_type: TargetingType
    match_type: MatchType | None = None
    ad_group_ids: tuple[str, ...] = ()

    @computed_field  # type: ignore[misc]
    @property
    def conversions(self) -> int:
        """Orders attributed to this campaign."""
        return self.orders


class LosingCampaign(BaseSTIModel):
    """A non-winning campaign and where the query must be negated in it."""

    model_config = ConfigDict(frozen=True)

    campaign_id: str
    campaign_name: str = ""
    negation_scope: NegationScope
    ad_group_ids: tuple[str, ...] = ()
    spend: float = 0.0


class Resolution(BaseSTIModel):
    """Winner and losers for one conflicting query."""

    model_config = ConfigDict(frozen=True)

    winner_campaign_id: str
    winner_campaign_name: str = ""
    losers: tuple[LosingCampaign, ...]
    reason: str

    @property
    def loser_campaign_ids(self) -> list[str]:
        return [loser.campaign_id for loser in self.losers]


class ConflictGroup(BaseSTIModel):
    """One query served by two or more campaigns in the analysis window."""

    model_config = ConfigDict(frozen=True)

    query: str
    campaigns: tuple[CampaignPerformance, ...]
    wasted_spend: float = Field(..., ge=0.0)
    severity: Priority
    ambiguous: bool = Field(
        default=False, description="Winner's ROAS lead is within the ambiguity margin"
    )
    resolution: Resolution

    @property
    def suggestion_id(self) -> str:
        return f"conflict:{self.query}"


class FunnelTier(str, Enum):
    """Position of a campaign in the match-type funnel, tightest first."""

    CORE = "tier1_exact"
    LONG_TAIL = "tier2_longtail"
    EXPLORE = "tier3_explore"


class FunnelTierAssignment(BaseSTIModel):
    """The funnel tier a campaign was placed in and why."""

    model_config = ConfigDict(frozen=True)

    campaign_id: str
    campaign_name: str = ""
    tier: FunnelTier
    dominant_match_type: MatchType
    keyword_count: int = Field(..., ge=1)
