"""N-gram word-root aggregation and negative keyword analysis.

Queries are split into word roots of 1-3 tokens, performance is summed per
root across the whole query set, and roots that keep wasting spend become
negative keyword suggestions. Roots containing a token the account actively
bids on are never materialized.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from searchterm_intel.analyzers.base import AnalysisSummary, BaseAnalyzer
from searchterm_intel.analyzers.classifier import NegativeCandidateClassifier
from searchterm_intel.analyzers.tokenizer import (
    build_core_roots,
    generate_ngrams,
    tokenize,
)
from searchterm_intel.core.config import ClassifierConfig, NgramConfig
from searchterm_intel.core.exceptions import ConfigurationError
from searchterm_intel.data_providers.base import PerformanceDataProvider
from searchterm_intel.models.performance import PerformanceRow
from searchterm_intel.models.suggestions import NegativeSuggestion, WordRoot

logger = logging.getLogger(__name__)

MAX_NGRAM_LENGTH = 3
MAX_REPORT_SUGGESTIONS = 50
MAX_REPORT_WASTEFUL_ROOTS = 20
MAX_REPORT_CORE_ROOTS = 100


@dataclass
class _Totals:
    impressions: int = 0
    clicks: int = 0
    spend: float = 0.0
    orders: int = 0
    sales: float = 0.0
    frequency: int = 0
    # dict keeps first-seen order for the evidence sample
    queries: dict[str, None] = field(default_factory=dict)

    def add(self, other: "_Totals") -> None:
        self.impressions += other.impressions
        self.clicks += other.clicks
        self.spend += other.spend
        self.orders += other.orders
        self.sales += other.sales


def _consolidate(
    rows: list[PerformanceRow], per_campaign: bool
) -> dict[tuple[str, str | None], _Totals]:
    """Sum rows into one entry per query (or per query and campaign)."""
    units: dict[tuple[str, str | None], _Totals] = {}
    for row in rows:
        key = (row.query, row.campaign_id if per_campaign else None)
        totals = units.setdefault(key, _Totals())
        totals.add(
            _Totals(
                impressions=row.impressions,
                clicks=row.clicks,
                spend=row.spend,
                orders=row.orders,
                sales=row.sales,
            )
        )
    return units


def aggregate(
    rows: list[PerformanceRow],
    core_roots: frozenset[str] | set[str] = frozenset(),
    config: NgramConfig | None = None,
    min_n: int | None = None,
    max_n: int | None = None,
) -> dict[tuple[str, int], WordRoot]:
    """Aggregate performance per word root.

    Args:
        rows: Performance rows for one account/campaign scope and window
        core_roots: Tokens of actively targeted keywords; spans containing
            any of them are discarded
        config: Tokenizer and threshold settings
        min_n: Override for the shortest span length
        max_n: Override for the longest span length

    Returns:
        Roots keyed by (root text, n) that clear the frequency and spend
        floors, in first-seen order

    Raises:
        ConfigurationError: The span length range is empty or outside 1-3
    """
    config = config or NgramConfig()
    min_n = min_n if min_n is not None else config.min_ngram_length
    max_n = max_n if max_n is not None else config.max_ngram_length
    if not 1 <= min_n <= max_n <= MAX_NGRAM_LENGTH:
        raise ConfigurationError(
            f"n-gram range must satisfy 1 <= min_n <= max_n <= {MAX_NGRAM_LENGTH}, "
            f"got min_n={min_n}, max_n={max_n}"
        )

    stats: dict[tuple[str, int], _Totals] = {}
    for (query, _), unit in _consolidate(rows, config.count_per_campaign).items():
        tokens = tokenize(query, config.stop_words, config.min_token_length)
        seen: set[tuple[str, int]] = set()
        for n in range(min_n, max_n + 1):
            for span in generate_ngrams(tokens, n):
                if any(token in core_roots for token in span.split(" ")):
                    continue
                key = (span, n)
                if key in seen:
                    continue
                seen.add(key)

                totals = stats.setdefault(key, _Totals())
                totals.frequency += 1
                totals.add(unit)
                totals.queries[query] = None

    roots: dict[tuple[str, int], WordRoot] = {}
    for (span, n), totals in stats.items():
        if totals.frequency < config.min_frequency or totals.spend < config.min_spend:
            continue
        roots[(span, n)] = WordRoot(
            root=span,
            n=n,
            frequency=totals.frequency,
            impressions=totals.impressions,
            clicks=totals.clicks,
            spend=totals.spend,
            orders=totals.orders,
            sales=totals.sales,
            queries=tuple(totals.queries),
        )
    return roots


class NgramSummary(BaseModel):
    """Headline counts for one n-gram analysis run."""

    total_search_terms: int
    total_ngrams: int
    negative_candidates: int
    high_priority: int
    medium_priority: int
    low_priority: int
    estimated_savings: float


class NgramReport(BaseModel):
    """Detailed n-gram analysis output for review screens."""

    summary: NgramSummary
    suggestions: list[NegativeSuggestion]
    top_wasteful_roots: list[WordRoot]
    core_roots_excluded: list[str]


class NgramNegativeAnalyzer(BaseAnalyzer):
    """Identify word roots that waste spend across many search queries.

    Returns negative keyword suggestions ranked by priority and spend.
    """

    def __init__(
        self,
        data_provider: PerformanceDataProvider | None = None,
        ngram_config: NgramConfig | None = None,
        classifier_config: ClassifierConfig | None = None,
    ):
        """Initialize the analyzer.

        Args:
            data_provider: Row and keyword source used by ``analyze``
            ngram_config: Tokenizer and aggregation thresholds
            classifier_config: Negative-candidate rule thresholds
        """
        super().__init__(data_provider)
        self.ngram_config = ngram_config or NgramConfig()
        self.classifier = NegativeCandidateClassifier(
            classifier_config, self.ngram_config
        )

    def core_roots(self, keyword_texts: list[str]) -> frozenset[str]:
        return build_core_roots(
            keyword_texts,
            self.ngram_config.stop_words,
            self.ngram_config.min_token_length,
        )

    def aggregate(
        self, rows: list[PerformanceRow], keyword_texts: list[str]
    ) -> dict[tuple[str, int], WordRoot]:
        return aggregate(rows, self.core_roots(keyword_texts), self.ngram_config)

    def generate_suggestions(
        self, rows: list[PerformanceRow], keyword_texts: list[str]
    ) -> list[NegativeSuggestion]:
        """Aggregate, classify and rank in one pass."""
        return self.classifier.suggest(self.aggregate(rows, keyword_texts).values())

    def summarize(
        self, rows: list[PerformanceRow], keyword_texts: list[str]
    ) -> NgramSummary:
        roots = self.aggregate(rows, keyword_texts)
        return self._summarize(roots, self.classifier.suggest(roots.values()))

    def build_report(
        self, rows: list[PerformanceRow], keyword_texts: list[str]
    ) -> NgramReport:
        """Build the summary, capped suggestions and the wasteful-root table.

        Wasteful roots are listed by spend whether or not they are
        candidates: any root with zero orders or ACoS above the low-priority
        cut-off.
        """
        core_roots = self.core_roots(keyword_texts)
        roots = aggregate(rows, core_roots, self.ngram_config)
        suggestions = self.classifier.suggest(roots.values())

        acos_cutoff = self.classifier.config.min_acos_for_low
        wasteful = sorted(
            (r for r in roots.values() if r.orders == 0 or r.acos > acos_cutoff),
            key=lambda r: (-r.spend, r.root),
        )
        return NgramReport(
            summary=self._summarize(roots, suggestions),
            suggestions=suggestions[:MAX_REPORT_SUGGESTIONS],
            top_wasteful_roots=wasteful[:MAX_REPORT_WASTEFUL_ROOTS],
            core_roots_excluded=sorted(core_roots)[:MAX_REPORT_CORE_ROOTS],
        )

    def _summarize(
        self,
        roots: dict[tuple[str, int], WordRoot],
        suggestions: list[NegativeSuggestion],
    ) -> NgramSummary:
        search_terms = {query for root in roots.values() for query in root.queries}
        by_priority = {"high": 0, "medium": 0, "low": 0}
        for suggestion in suggestions:
            by_priority[suggestion.priority] += 1
        return NgramSummary(
            total_search_terms=len(search_terms),
            total_ngrams=len(roots),
            negative_candidates=len(suggestions),
            high_priority=by_priority["high"],
            medium_priority=by_priority["medium"],
            low_priority=by_priority["low"],
            estimated_savings=sum(s.estimated_savings for s in suggestions),
        )

    async def fetch_suggestions(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
        window_days: int = 30,
    ) -> list[NegativeSuggestion]:
        """Fetch a fresh snapshot and generate suggestions from it."""
        rows = await self._fetch_rows(account_id, campaign_ids, window_days)
        keyword_texts = await self._fetch_keyword_texts(
            account_id, campaign_ids
        )
        return self.generate_suggestions(rows, keyword_texts)

    async def analyze(
        self,
        account_id: str,
        window_days: int,
        campaign_ids: list[str] | None = None,
        **kwargs: Any,
    ) -> AnalysisSummary:
        """Identify wasteful word roots.

        Args:
            account_id: Advertising account ID
            window_days: Lookback window in days
            campaign_ids: Optional campaign IDs to limit scope

        Returns:
            AnalysisSummary with top negative keyword recommendations
        """
        logger.info(f"Starting n-gram negative analysis for account {account_id}")

        rows = await self._fetch_rows(account_id, campaign_ids, window_days)
        keyword_texts = await self._fetch_keyword_texts(
            account_id, campaign_ids
        )
        logger.info(
            f"Analyzing {len(rows)} rows against {len(keyword_texts)} active keywords"
        )

        report = self.build_report(rows, keyword_texts)
        top_10 = [
            {
                "root": s.root,
                "match_type": s.match_type,
                "priority": s.priority,
                "spend": s.spend,
                "estimated_savings": s.estimated_savings,
                "reasoning": s.reason,
            }
            for s in report.suggestions[:10]
        ]
        total_savings = report.summary.estimated_savings

        if report.summary.high_priority > 10:
            primary_issue = (
                f"Significant waste: {report.summary.high_priority} "
                "high-priority word roots"
            )
        elif report.summary.negative_candidates:
            primary_issue = (
                f"{report.summary.negative_candidates} word roots wasting "
                f"{self._format_currency(total_savings)}"
            )
        else:
            primary_issue = "No wasteful word roots detected"

        logger.info(
            f"Analysis complete: {report.summary.negative_candidates} negative "
            f"candidates, {self._format_currency(total_savings)} estimated savings"
        )

        return AnalysisSummary(
            total_records_analyzed=len(rows),
            estimated_savings=total_savings,
            primary_issue=primary_issue,
            top_recommendations=top_10,
            implementation_steps=self._generate_implementation_steps(report.suggestions),
            analysis_period=f"last {window_days} days",
            account_id=account_id,
        )

    def _generate_implementation_steps(
        self, suggestions: list[NegativeSuggestion]
    ) -> list[str]:
        """Generate prioritized action steps."""
        if not suggestions:
            return ["No wasteful word roots identified - search terms are well-targeted"]

        high = [s for s in suggestions if s.priority == "high"]
        high_savings = sum(s.estimated_savings for s in high)
        return [
            f"Review and accept {len(high)} high-priority negatives ({self._format_currency(high_savings)} estimated savings)",
            "Review medium-priority roots against recent conversion trends",
            "Re-run the analysis after one window to confirm spend recovery",
        ]
