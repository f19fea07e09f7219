"""Base model with common configuration and metric formulas."""

import math
from enum import Enum

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field, computed_field


def calculate_ctr(clicks: float, impressions: float) -> float:
    """Click-through rate as a percentage."""
    return (clicks / impressions * 100) if impressions > 0 else 0.0


def calculate_cvr(orders: float, clicks: float) -> float:
    """Conversion rate as a percentage."""
    return (orders / clicks * 100) if clicks > 0 else 0.0


def calculate_acos(spend: float, sales: float) -> float:
    """Advertising cost of sales as a percentage.

    Returns ``math.inf`` when there is spend but no sales, the "no sales"
    sentinel, and 0 when there is neither.
    """
    if sales > 0:
        return spend / sales * 100
    return math.inf if spend > 0 else 0.0


def calculate_roas(sales: float, spend: float) -> float:
    """Return on ad spend."""
    return sales / spend if spend > 0 else 0.0


def calculate_cpc(spend: float, clicks: float) -> float:
    """Cost per click."""
    return spend / clicks if clicks > 0 else 0.0


class Priority(str, Enum):
    """Suggestion priority tiers, ordered most urgent first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


class BaseSTIModel(PydanticBaseModel):
    """Base model for all search term intelligence models."""

    model_config = ConfigDict(
        # Use enum values instead of names
        use_enum_values=True,
        # Validate on assignment
        validate_assignment=True,
        # Allow population by field name
        populate_by_name=True,
        # Keep the "no sales" ACoS sentinel readable after a JSON round trip
        ser_json_inf_nan="strings",
    )


class MetricTotals(BaseSTIModel):
    """Summed performance counters with derived ratios."""

    impressions: int = Field(default=0, ge=0, description="Total impressions")
    clicks: int = Field(default=0, ge=0, description="Total clicks")
    spend: float = Field(default=0.0, ge=0.0, description="Total spend")
    orders: int = Field(default=0, ge=0, description="Total orders")
    sales: float = Field(default=0.0, ge=0.0, description="Total sales")

    @computed_field  # type: ignore[misc]
    @property
    def ctr(self) -> float:
        """Calculate click-through rate."""
        return calculate_ctr(self.clicks, self.impressions)

    @computed_field  # type: ignore[misc]
    @property
    def cvr(self) -> float:
        """Calculate conversion rate."""
        return calculate_cvr(self.orders, self.clicks)

    @computed_field  # type: ignore[misc]
    @property
    def acos(self) -> float:
        """Calculate advertising cost of sales."""
        return calculate_acos(self.spend, self.sales)

    @computed_field  # type: ignore[misc]
    @property
    def roas(self) -> float:
        """Calculate return on ad spend."""
        return calculate_roas(self.sales, self.spend)

    @computed_field  # type: ignore[misc]
    @property
    def cpc(self) -> float:
        """Calculate cost per click."""
        return calculate_cpc(self.spend, self.clicks)
