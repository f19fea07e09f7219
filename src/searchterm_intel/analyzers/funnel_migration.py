"""Funnel Migration Analyzer.

Promotes converting queries one step down the match-type funnel:
broad -> phrase once they convert repeatedly, phrase -> exact once they
convert at volume and high efficiency. A promoted query must then be negated
in its source campaign so the loose and tight campaigns stop double-serving
it.
"""

import logging
from collections import defaultdict
from typing import Any

from pydantic import BaseModel

from searchterm_intel.analyzers.base import AnalysisSummary, BaseAnalyzer
from searchterm_intel.core.config import MigrationConfig
from searchterm_intel.data_providers.base import PerformanceDataProvider
from searchterm_intel.models.base import PRIORITY_ORDER, MetricTotals, Priority
from searchterm_intel.models.performance import (
    MatchType,
    NegationScope,
    PerformanceRow,
    campaign_sort_key,
    sum_rows,
)
from searchterm_intel.models.suggestions import ConflictGroup, MigrationSuggestion

logger = logging.getLogger(__name__)

# Next tighter tier for each migratable source match type
PROMOTION_PATH = {
    MatchType.BROAD.value: MatchType.PHRASE,
    MatchType.PHRASE.value: MatchType.EXACT,
}


class TierStatus(BaseModel):
    """Distinct queries served per match-type tier."""

    exact: int = 0
    phrase: int = 0
    broad: int = 0


class MigrationSummary(BaseModel):
    """Headline counts for the funnel and its conflicts."""

    total_search_terms: int
    migration_candidates: int
    high_priority: int
    medium_priority: int
    low_priority: int
    conflict_count: int
    potential_savings: float


def negation_scope_for(
    rows: list[PerformanceRow], ad_group_ids: tuple[str, ...]
) -> NegationScope:
    """Choose where a query must be negated inside one campaign.

    Product-targeted ad groups can only be negated at campaign level, so any
    product-targeted row forces campaign scope. Ad-group scope also needs at
    least one known ad group.
    """
    if any(row.is_product_targeted for row in rows) or not ad_group_ids:
        return NegationScope.CAMPAIGN
    return NegationScope.AD_GROUP


class FunnelMigrationAnalyzer(BaseAnalyzer):
    """Recommend match-type promotions for converting queries."""

    def __init__(
        self,
        data_provider: PerformanceDataProvider | None = None,
        config: MigrationConfig | None = None,
    ):
        super().__init__(data_provider)
        self.config = config or MigrationConfig()

    def is_eligible(self, source_match_type: str, totals: MetricTotals) -> bool:
        """Apply the hard eligibility gate for the source tier."""
        if source_match_type == MatchType.BROAD:
            return totals.orders >= self.config.broad_to_phrase_min_orders
        if source_match_type == MatchType.PHRASE:
            return (
                totals.orders >= self.config.phrase_to_exact_min_orders
                and totals.roas > self.config.phrase_to_exact_min_roas
            )
        return False

    def priority_for(self, totals: MetricTotals) -> Priority:
        if (
            totals.roas >= self.config.high_priority_roas
            or totals.orders >= self.config.high_priority_orders
        ):
            return Priority.HIGH
        if (
            totals.roas >= self.config.medium_priority_roas
            or totals.orders >= self.config.medium_priority_orders
        ):
            return Priority.MEDIUM
        return Priority.LOW

    def analyze_migrations(self, rows: list[PerformanceRow]) -> list[MigrationSuggestion]:
        """Scan rows and return promotion suggestions.

        Rows are summed per (query, campaign, match type). The best CPC seen
        for a query, taken from its highest-ROAS serving group, is a floor
        for the recommended bid.
        """
        groups: dict[tuple[str, str, str | None], list[PerformanceRow]] = defaultdict(list)
        by_query_campaign: dict[tuple[str, str], list[PerformanceRow]] = defaultdict(list)
        for row in rows:
            groups[(row.query, row.campaign_id, row.match_type)].append(row)
            by_query_campaign[(row.query, row.campaign_id)].append(row)

        totals = {key: sum_rows(group) for key, group in groups.items()}
        best_cpc = self._best_cpc_by_query(totals)

        suggestions = []
        for (query, campaign_id, match_type), group_totals in totals.items():
            if match_type not in PROMOTION_PATH:
                continue
            if not self.is_eligible(match_type, group_totals):
                continue

            target = PROMOTION_PATH[match_type]
            multiplier = (
                self.config.exact_bid_multiplier
                if target == MatchType.EXACT
                else self.config.phrase_bid_multiplier
            )
            campaign_rows = by_query_campaign[(query, campaign_id)]
            ad_group_ids = tuple(
                sorted({r.ad_group_id for r in campaign_rows if r.ad_group_id})
            )
            recommended_bid = max(group_totals.cpc * multiplier, best_cpc[query])

            suggestions.append(
                MigrationSuggestion(
                    query=query,
                    campaign_id=campaign_id,
                    campaign_name=groups[(query, campaign_id, match_type)][0].campaign_name,
                    source_match_type=match_type,
                    target_match_type=target,
                    recommended_bid=round(recommended_bid, 2),
                    current_cpc=round(group_totals.cpc, 2),
                    clicks=group_totals.clicks,
                    orders=group_totals.orders,
                    spend=group_totals.spend,
                    sales=group_totals.sales,
                    roas=group_totals.roas,
                    cvr=group_totals.cvr,
                    priority=self.priority_for(group_totals),
                    reason=(
                        f"{group_totals.orders} orders at ROAS {group_totals.roas:.2f} "
                        f"under {match_type} match; promote to {target.value}"
                    ),
                    # Only exact is fully restrictive; every promotable source needs it
                    negation_required=True,
                    negation_scope=negation_scope_for(campaign_rows, ad_group_ids),
                    ad_group_ids=ad_group_ids,
                )
            )

        suggestions.sort(
            key=lambda s: (
                PRIORITY_ORDER[s.priority],
                -s.roas,
                s.query,
                campaign_sort_key(s.campaign_id),
            )
        )
        return suggestions

    def _best_cpc_by_query(
        self, totals: dict[tuple[str, str, str | None], MetricTotals]
    ) -> dict[str, float]:
        best: dict[str, tuple[tuple[Any, ...], float]] = {}
        for (query, campaign_id, match_type), group_totals in totals.items():
            # Highest ROAS, then most orders, then lowest campaign id
            rank = (
                -group_totals.roas,
                -group_totals.orders,
                campaign_sort_key(campaign_id),
                match_type or "",
            )
            if query not in best or rank < best[query][0]:
                best[query] = (rank, group_totals.cpc)
        return {query: cpc for query, (_, cpc) in best.items()}

    def tier_status(self, rows: list[PerformanceRow]) -> TierStatus:
        """Count distinct queries served under each match-type tier."""
        tiers: dict[str, set[str]] = defaultdict(set)
        for row in rows:
            if row.match_type:
                tiers[row.match_type].add(row.query)
        return TierStatus(
            exact=len(tiers[MatchType.EXACT.value]),
            phrase=len(tiers[MatchType.PHRASE.value]),
            broad=len(tiers[MatchType.BROAD.value]),
        )

    def summarize(
        self,
        rows: list[PerformanceRow],
        suggestions: list[MigrationSuggestion],
        conflicts: list[ConflictGroup],
    ) -> MigrationSummary:
        by_priority = {"high": 0, "medium": 0, "low": 0}
        for suggestion in suggestions:
            by_priority[suggestion.priority] += 1
        return MigrationSummary(
            total_search_terms=len({row.query for row in rows}),
            migration_candidates=len(suggestions),
            high_priority=by_priority["high"],
            medium_priority=by_priority["medium"],
            low_priority=by_priority["low"],
            conflict_count=len(conflicts),
            potential_savings=sum(c.wasted_spend for c in conflicts),
        )

    async def fetch_suggestions(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
        window_days: int = 30,
    ) -> list[MigrationSuggestion]:
        """Fetch a fresh snapshot and generate suggestions from it."""
        rows = await self._fetch_rows(account_id, campaign_ids, window_days)
        return self.analyze_migrations(rows)

    async def analyze(
        self,
        account_id: str,
        window_days: int,
        campaign_ids: list[str] | None = None,
        **kwargs: Any,
    ) -> AnalysisSummary:
        """Recommend match-type promotions.

        Args:
            account_id: Advertising account ID
            window_days: Lookback window in days
            campaign_ids: Optional campaign IDs to limit scope

        Returns:
            AnalysisSummary with top promotion recommendations
        """
        logger.info(f"Starting funnel migration analysis for account {account_id}")

        rows = await self._fetch_rows(account_id, campaign_ids, window_days)
        suggestions = self.analyze_migrations(rows)
        tiers = self.tier_status(rows)

        top_10 = [
            {
                "query": s.query,
                "campaign_id": s.campaign_id,
                "current_match_type": s.source_match_type,
                "recommended_match_type": s.target_match_type,
                "recommended_bid": s.recommended_bid,
                "sales": s.sales,
                "priority": s.priority,
                "negation_scope": s.negation_scope,
                "reasoning": s.reason,
            }
            for s in suggestions[:10]
        ]

        if not suggestions:
            primary_issue = "No queries ready for a tighter match type"
        elif tiers.exact == 0:
            primary_issue = (
                f"No exact-match tier: {len(suggestions)} converting queries "
                "still served by loose match types"
            )
        else:
            primary_issue = (
                f"{len(suggestions)} converting queries ready for a tighter match type"
            )

        logger.info(f"Analysis complete: {len(suggestions)} migration suggestions")

        return AnalysisSummary(
            total_records_analyzed=len(rows),
            # Promotions shift spend rather than remove it
            estimated_savings=0.0,
            primary_issue=primary_issue,
            top_recommendations=top_10,
            implementation_steps=self._generate_implementation_steps(suggestions),
            analysis_period=f"last {window_days} days",
            account_id=account_id,
        )

    def _generate_implementation_steps(
        self, suggestions: list[MigrationSuggestion]
    ) -> list[str]:
        """Generate prioritized action steps."""
        if not suggestions:
            return ["No promotions needed - re-check after the next window"]

        to_exact = sum(1 for s in suggestions if s.target_match_type == "exact")
        to_phrase = len(suggestions) - to_exact
        return [
            f"Add {to_exact} queries as exact keywords and {to_phrase} as phrase keywords at the recommended bids",
            "Negate each promoted query in its source campaign at the listed scope",
            "Compare ROAS of the promoted keywords after one window",
        ]
