"""Search query performance data models."""

from collections.abc import Iterable
from datetime import date
from enum import Enum

from pydantic import ConfigDict, Field, field_validator, model_validator

from searchterm_intel.models.base import BaseSTIModel, MetricTotals


class MatchType(str, Enum):
    """Keyword match types, loosest first."""

    BROAD = "broad"
    PHRASE = "phrase"
    EXACT = "exact"


# Higher is more restrictive
MATCH_TYPE_RESTRICTIVENESS = {"broad": 0, "phrase": 1, "exact": 2}


class TargetingType(str, Enum):
    """How the ad group that served a query selects traffic."""

    KEYWORD = "keyword"
    PRODUCT = "product"


class NegationScope(str, Enum):
    """Level at which a negative keyword is applied."""

    AD_GROUP = "ad_group"
    CAMPAIGN = "campaign"


class NegativeMatchType(str, Enum):
    """Match types for negative keywords."""

    NEGATIVE_PHRASE = "negative_phrase"
    NEGATIVE_EXACT = "negative_exact"


class PerformanceRow(MetricTotals):
    """Performance of one search query in one campaign/ad group/match type/day.

    Rows are read-only snapshots supplied by a row source; analyzers never
    mutate them.
    """

    model_config = ConfigDict(frozen=True)

    query: str = Field(..., description="The customer search query")
    campaign_id: str = Field(..., description="Campaign that served the query")
    campaign_name: str = Field(default="", description="Campaign name")
    campaign_type: str | None = Field(
        None, description="Campaign ad type, e.g. sponsored_products"
    )
    ad_group_id: str | None = Field(None, description="Ad group that served the query")
    match_type: MatchType | None = Field(
        None, description="Match type of the keyword that triggered the query"
    )
    targeting_type: TargetingType = Field(
        default=TargetingType.KEYWORD, description="Targeting mode of the ad group"
    )
    date_start: date | None = Field(None, description="Start date of metrics")

    @field_validator("campaign_id", "ad_group_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: object) -> object:
        """Accept numeric platform ids."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("match_type", mode="before")
    @classmethod
    def normalize_match_type(cls, v: object) -> object:
        """Accept upper-case platform match type names."""
        if isinstance(v, str):
            return v.lower() or None
        return v

    @model_validator(mode="after")
    def validate_clicks_within_impressions(self) -> "PerformanceRow":
        """Clicks can never exceed impressions."""
        if self.clicks > self.impressions:
            raise ValueError(
                f"clicks ({self.clicks}) exceed impressions ({self.impressions})"
            )
        return self

    @property
    def is_product_targeted(self) -> bool:
        return self.targeting_type == TargetingType.PRODUCT


class Keyword(BaseSTIModel):
    """An actively targeted keyword in the account's inventory."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Keyword text as targeted")
    campaign_id: str
    campaign_name: str = ""
    ad_group_id: str | None = None
    match_type: MatchType

    @field_validator("campaign_id", "ad_group_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: object) -> object:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("match_type", mode="before")
    @classmethod
    def normalize_match_type(cls, v: object) -> object:
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def normalized_text(self) -> str:
        return " ".join(self.text.lower().split())


def campaign_sort_key(campaign_id: str) -> tuple[int, int, str]:
    """Order campaign ids numerically when numeric, lexically otherwise."""
    if campaign_id.isdigit():
        return (0, int(campaign_id), campaign_id)
    return (1, 0, campaign_id)


def sum_rows(rows: Iterable[PerformanceRow]) -> MetricTotals:
    """Sum the counters of several rows."""
    impressions = clicks = orders = 0
    spend = sales = 0.0
    for row in rows:
        impressions += row.impressions
        clicks += row.clicks
        orders += row.orders
        spend += row.spend
        sales += row.sales
    return MetricTotals(
        impressions=impressions,
        clicks=clicks,
        spend=spend,
        orders=orders,
        sales=sales,
    )
