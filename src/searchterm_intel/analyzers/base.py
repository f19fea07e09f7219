"""Base analyzer class for search term intelligence."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from searchterm_intel.core.exceptions import (
    AnalysisError,
    DataProviderError,
    SearchTermIntelError,
)
from searchterm_intel.data_providers.base import PerformanceDataProvider
from searchterm_intel.models.performance import PerformanceRow


class AnalysisSummary(BaseModel):
    """Standard format for analysis summaries.

    This model ensures all analyzers return consistent, compact summaries
    instead of raw rows.
    """

    total_records_analyzed: int = Field(description="Total number of rows analyzed")
    estimated_savings: float = Field(
        description="Estimated savings from implementing recommendations"
    )
    primary_issue: str = Field(description="Primary issue identified in the analysis")
    top_recommendations: list[dict[str, Any]] = Field(
        description="Top 10 recommendations with dollar impact"
    )
    implementation_steps: list[str] = Field(
        description="Prioritized implementation steps"
    )
    analysis_period: str = Field(description="Lookback window of the analysis")
    account_id: str = Field(description="Advertising account ID")


class BaseAnalyzer(ABC):
    """Base class for all analyzers.

    Subclasses keep their core computation in pure methods over already
    fetched rows; ``analyze`` only fetches from the injected provider and
    summarizes.
    """

    def __init__(self, data_provider: PerformanceDataProvider | None = None):
        self.data_provider = data_provider

    @abstractmethod
    async def analyze(
        self,
        account_id: str,
        window_days: int,
        campaign_ids: list[str] | None = None,
        **kwargs: Any,
    ) -> AnalysisSummary:
        """Perform analysis and return summary.

        Args:
            account_id: Advertising account ID
            window_days: Lookback window in days
            campaign_ids: Optional campaign IDs to limit scope
            **kwargs: Additional analyzer-specific parameters

        Returns:
            AnalysisSummary with top recommendations only
        """
        pass

    def _require_provider(self) -> PerformanceDataProvider:
        if self.data_provider is None:
            raise AnalysisError(
                f"{type(self).__name__} needs a data provider to fetch rows"
            )
        return self.data_provider

    async def _fetch_rows(
        self,
        account_id: str,
        campaign_ids: list[str] | None,
        window_days: int,
    ) -> list[PerformanceRow]:
        """Fetch one row snapshot for an analysis run."""
        provider = self._require_provider()
        try:
            return await provider.fetch_performance_rows(
                account_id, campaign_ids, window_days
            )
        except SearchTermIntelError:
            raise
        except Exception as e:
            raise DataProviderError(
                f"Failed to fetch performance rows for account {account_id}: {e}"
            ) from e

    async def _fetch_keyword_texts(
        self, account_id: str, campaign_ids: list[str] | None
    ) -> list[str]:
        """Fetch the active keyword inventory used for core-root exclusion."""
        provider = self._require_provider()
        try:
            return await provider.fetch_active_keyword_texts(account_id, campaign_ids)
        except SearchTermIntelError:
            raise
        except Exception as e:
            raise DataProviderError(
                f"Failed to fetch keyword texts for account {account_id}: {e}"
            ) from e

    def _format_currency(self, amount: float) -> str:
        """Format dollar amounts consistently.

        Args:
            amount: Dollar amount to format

        Returns:
            Formatted currency string (e.g., "$1,234.56")
        """
        return f"${amount:,.2f}"
