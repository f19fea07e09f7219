"""Collaborator interfaces consumed by the analyzers and the review gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from searchterm_intel.models.performance import NegativeMatchType, PerformanceRow


class PerformanceDataProvider(ABC):
    """Interface for sources of search query performance and keyword inventory."""

    @abstractmethod
    async def fetch_performance_rows(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
        window_days: int = 30,
    ) -> list[PerformanceRow]:
        """Fetch search query performance rows for the lookback window.

        Must return one row per (query, campaign, ad group, match type, day)
        aggregate. Analyzers perform no further time bucketing.
        """
        pass

    @abstractmethod
    async def fetch_active_keyword_texts(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
    ) -> list[str]:
        """Fetch the text of every actively targeted keyword in scope."""
        pass


class NegativeKeywordWriter(ABC):
    """Interface for the only collaborator allowed to change keyword inventory."""

    @abstractmethod
    async def add_negative_keyword(
        self,
        account_id: str,
        campaign_id: str,
        ad_group_id: str | None,
        text: str,
        match_type: NegativeMatchType,
    ) -> None:
        """Add one negative keyword.

        Campaign scope when ``ad_group_id`` is None, ad-group scope otherwise.

        Raises:
            DuplicateNegativeKeywordError: The negative keyword already exists.
            Exception: Any other failure.
        """
        pass
