"""Traffic Conflict Detector & Resolver.

Finds queries served by more than one campaign in the same window and picks
a single campaign to keep the traffic. Every other campaign is told where to
negate the query so spend consolidates on the winner.
"""

import logging
from collections import defaultdict
from typing import Any

from searchterm_intel.analyzers.base import AnalysisSummary, BaseAnalyzer
from searchterm_intel.analyzers.funnel_migration import negation_scope_for
from searchterm_intel.core.config import ConflictConfig
from searchterm_intel.data_providers.base import PerformanceDataProvider
from searchterm_intel.models.base import PRIORITY_ORDER, Priority
from searchterm_intel.models.performance import (
    MATCH_TYPE_RESTRICTIVENESS,
    PerformanceRow,
    TargetingType,
    campaign_sort_key,
    sum_rows,
)
from searchterm_intel.models.suggestions import (
    CampaignPerformance,
    ConflictGroup,
    LosingCampaign,
    Resolution,
)

logger = logging.getLogger(__name__)


def _dominant_match_type(rows: list[PerformanceRow]) -> str | None:
    """Match type carrying the most clicks; ties go to the tighter type."""
    clicks: dict[str, int] = defaultdict(int)
    for row in rows:
        if row.match_type:
            clicks[row.match_type] += row.clicks
    if not clicks:
        return None
    return max(clicks, key=lambda m: (clicks[m], MATCH_TYPE_RESTRICTIVENESS[m]))


def summarize_campaign(rows: list[PerformanceRow]) -> CampaignPerformance:
    """Collapse one campaign's rows for a query into a single summary."""
    first = rows[0]
    totals = sum_rows(rows)
    product = any(row.is_product_targeted for row in rows)
    return CampaignPerformance(
        campaign_id=first.campaign_id,
        campaign_name=first.campaign_name,
        campaign_type=first.campaign_type,
        targeting_type=TargetingType.PRODUCT if product else TargetingType.KEYWORD,
        match_type=_dominant_match_type(rows),
        ad_group_ids=tuple(sorted({r.ad_group_id for r in rows if r.ad_group_id})),
        impressions=totals.impressions,
        clicks=totals.clicks,
        spend=totals.spend,
        orders=totals.orders,
        sales=totals.sales,
    )


def winner_sort_key(campaign: CampaignPerformance) -> tuple[Any, ...]:
    """Highest ROAS, then most conversions, then lowest campaign id."""
    return (-campaign.roas, -campaign.conversions, campaign_sort_key(campaign.campaign_id))


def explain_winner(winner: CampaignPerformance, runner_up: CampaignPerformance) -> str:
    name = winner.campaign_name or winner.campaign_id
    if winner.roas > runner_up.roas:
        why = f"higher ROAS ({winner.roas:.2f} vs {runner_up.roas:.2f})"
    elif winner.conversions > runner_up.conversions:
        why = (
            f"equal ROAS but more conversions "
            f"({winner.conversions} vs {runner_up.conversions})"
        )
    else:
        why = "equal ROAS and conversions; lowest campaign id kept"
    return f"Keep traffic in {name}: {why}"


class TrafficConflictAnalyzer(BaseAnalyzer):
    """Detect and resolve queries split across competing campaigns."""

    def __init__(
        self,
        data_provider: PerformanceDataProvider | None = None,
        config: ConflictConfig | None = None,
    ):
        super().__init__(data_provider)
        self.config = config or ConflictConfig()

    def severity_for(self, campaigns: list[CampaignPerformance]) -> Priority:
        total_clicks = sum(c.clicks for c in campaigns)
        if (
            total_clicks >= self.config.high_severity_clicks
            or len(campaigns) >= self.config.high_severity_campaigns
        ):
            return Priority.HIGH
        if total_clicks >= self.config.medium_severity_clicks:
            return Priority.MEDIUM
        return Priority.LOW

    def is_ambiguous(
        self, winner: CampaignPerformance, runner_up: CampaignPerformance
    ) -> bool:
        """True when the winner's ROAS lead is inside the ambiguity margin."""
        if runner_up.roas <= 0:
            return winner.roas <= 0
        lead_pct = (winner.roas - runner_up.roas) / runner_up.roas * 100
        return lead_pct < self.config.ambiguity_margin_pct

    def resolve(
        self,
        query: str,
        campaigns: list[CampaignPerformance],
        rows_by_campaign: dict[str, list[PerformanceRow]],
    ) -> ConflictGroup:
        """Pick the winner and build loser negation targets for one query."""
        ranked = sorted(campaigns, key=winner_sort_key)
        winner, losers = ranked[0], ranked[1:]

        losing = tuple(
            LosingCampaign(
                campaign_id=loser.campaign_id,
                campaign_name=loser.campaign_name,
                negation_scope=negation_scope_for(
                    rows_by_campaign[loser.campaign_id], loser.ad_group_ids
                ),
                ad_group_ids=loser.ad_group_ids,
                spend=loser.spend,
            )
            for loser in losers
        )
        return ConflictGroup(
            query=query,
            campaigns=tuple(
                sorted(campaigns, key=lambda c: campaign_sort_key(c.campaign_id))
            ),
            wasted_spend=sum(loser.spend for loser in losers),
            severity=self.severity_for(campaigns),
            ambiguous=self.is_ambiguous(winner, losers[0]),
            resolution=Resolution(
                winner_campaign_id=winner.campaign_id,
                winner_campaign_name=winner.campaign_name,
                losers=losing,
                reason=explain_winner(winner, losers[0]),
            ),
        )

    def detect_conflicts(self, rows: list[PerformanceRow]) -> list[ConflictGroup]:
        """Group rows by exact query text and resolve every multi-campaign query.

        Output order is severity (high first), then wasted spend descending,
        then query text; input row order never changes the result.
        """
        by_query: dict[str, dict[str, list[PerformanceRow]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for row in rows:
            by_query[row.query][row.campaign_id].append(row)

        conflicts = []
        for query, rows_by_campaign in by_query.items():
            if len(rows_by_campaign) < 2:
                continue
            campaigns = [summarize_campaign(r) for r in rows_by_campaign.values()]
            conflicts.append(self.resolve(query, campaigns, rows_by_campaign))

        conflicts.sort(
            key=lambda c: (PRIORITY_ORDER[c.severity], -c.wasted_spend, c.query)
        )
        return conflicts

    async def fetch_conflicts(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
        window_days: int = 30,
    ) -> list[ConflictGroup]:
        """Fetch a fresh snapshot and detect conflicts in it."""
        rows = await self._fetch_rows(account_id, campaign_ids, window_days)
        return self.detect_conflicts(rows)

    async def analyze(
        self,
        account_id: str,
        window_days: int,
        campaign_ids: list[str] | None = None,
        **kwargs: Any,
    ) -> AnalysisSummary:
        """Detect campaigns competing for the same queries.

        Args:
            account_id: Advertising account ID
            window_days: Lookback window in days
            campaign_ids: Optional campaign IDs to limit scope

        Returns:
            AnalysisSummary with the costliest conflicts and their winners
        """
        logger.info(f"Starting traffic conflict analysis for account {account_id}")

        rows = await self._fetch_rows(account_id, campaign_ids, window_days)
        conflicts = self.detect_conflicts(rows)
        wasted = sum(c.wasted_spend for c in conflicts)

        top_10 = [
            {
                "query": c.query,
                "severity": c.severity,
                "winner_campaign_id": c.resolution.winner_campaign_id,
                "loser_campaign_ids": c.resolution.loser_campaign_ids,
                "wasted_spend": c.wasted_spend,
                "ambiguous": c.ambiguous,
                "reasoning": c.resolution.reason,
            }
            for c in conflicts[:10]
        ]

        if conflicts:
            primary_issue = (
                f"{len(conflicts)} queries served by competing campaigns, "
                f"{self._format_currency(wasted)} spent in losing campaigns"
            )
        else:
            primary_issue = "No cross-campaign traffic conflicts detected"

        logger.info(
            f"Analysis complete: {len(conflicts)} conflicts, "
            f"{self._format_currency(wasted)} wasted spend"
        )

        return AnalysisSummary(
            total_records_analyzed=len(rows),
            estimated_savings=wasted,
            primary_issue=primary_issue,
            top_recommendations=top_10,
            implementation_steps=self._generate_implementation_steps(conflicts),
            analysis_period=f"last {window_days} days",
            account_id=account_id,
        )

    def _generate_implementation_steps(self, conflicts: list[ConflictGroup]) -> list[str]:
        if not conflicts:
            return ["No conflicts to resolve - campaign structure is clean"]

        high = sum(1 for c in conflicts if c.severity == "high")
        ambiguous = sum(1 for c in conflicts if c.ambiguous)
        steps = [
            f"Resolve {high} high-severity conflicts by negating the query in losing campaigns",
        ]
        if ambiguous:
            steps.append(
                f"Check {ambiguous} close calls manually before accepting the suggested winner"
            )
        steps.append("Use campaign-level negatives where losing traffic came from product targeting")
        return steps
