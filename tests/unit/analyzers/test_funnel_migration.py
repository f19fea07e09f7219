"""Tests for the funnel migration analyzer."""

import pytest

from searchterm_intel.analyzers.funnel_migration import FunnelMigrationAnalyzer
from searchterm_intel.analyzers.traffic_conflicts import TrafficConflictAnalyzer
from searchterm_intel.core.config import MigrationConfig
from tests.helpers.row_helpers import create_row


def phrase_row(orders: int, **overrides):
    """Phrase-match row with ROAS 6.2."""
    values = {
        "query": "bluetooth headphones case",
        "match_type": "phrase",
        "clicks": 60,
        "spend": 100.0,
        "orders": orders,
        "sales": 620.0,
    }
    values.update(overrides)
    return create_row(**values)


@pytest.fixture
def analyzer():
    return FunnelMigrationAnalyzer()


class TestEligibilityGates:
    """Test the hard eligibility gates."""

    def test_phrase_to_exact_scenario(self, analyzer):
        """12 orders at ROAS 6.2 under phrase migrates to exact."""
        suggestions = analyzer.analyze_migrations([phrase_row(12)])

        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.source_match_type == "phrase"
        assert suggestion.target_match_type == "exact"
        assert suggestion.roas == pytest.approx(6.2)
        assert suggestion.orders == 12

    def test_phrase_with_nine_orders_is_not_eligible(self, analyzer):
        """The order-count gate fails below 10 orders."""
        assert analyzer.analyze_migrations([phrase_row(9)]) == []

    def test_phrase_roas_gate_is_strict(self, analyzer):
        """ROAS must exceed 5, not merely equal it."""
        assert analyzer.analyze_migrations([phrase_row(12, sales=500.0)]) == []
        assert len(analyzer.analyze_migrations([phrase_row(12, sales=501.0)])) == 1

    def test_broad_to_phrase(self, analyzer):
        """Three orders under broad migrates to phrase, two does not."""
        eligible = analyzer.analyze_migrations(
            [create_row(orders=3, sales=60.0, spend=30.0, clicks=30)]
        )
        assert [s.target_match_type for s in eligible] == ["phrase"]
        assert analyzer.analyze_migrations([create_row(orders=2, sales=60.0)]) == []

    def test_broad_has_no_roas_gate(self, analyzer):
        """Broad candidates need orders only."""
        suggestions = analyzer.analyze_migrations(
            [create_row(orders=3, sales=10.0, spend=40.0)]
        )
        assert len(suggestions) == 1

    def test_exact_is_never_migrated(self, analyzer):
        """Queries already on exact match stay put."""
        rows = [phrase_row(50, match_type="exact", sales=5000.0)]
        assert analyzer.analyze_migrations(rows) == []

    def test_orders_summed_across_rows(self, analyzer):
        """Daily rows of one query, campaign and match type are summed."""
        rows = [
            create_row(orders=2, sales=40.0, ad_group_id="11"),
            create_row(orders=1, sales=20.0, ad_group_id="12"),
        ]
        suggestions = analyzer.analyze_migrations(rows)
        assert len(suggestions) == 1
        assert suggestions[0].orders == 3
        assert suggestions[0].ad_group_ids == ("11", "12")

    def test_custom_gates(self):
        """Gates follow configuration."""
        analyzer = FunnelMigrationAnalyzer(
            config=MigrationConfig(phrase_to_exact_min_orders=5)
        )
        assert len(analyzer.analyze_migrations([phrase_row(9)])) == 1

    def test_empty_rows(self, analyzer):
        assert analyzer.analyze_migrations([]) == []


class TestBidsAndNegation:
    """Test recommended bids and source-campaign negation."""

    def test_best_cpc_is_bid_floor(self, analyzer):
        """The CPC of the best-ROAS serving group floors the bid."""
        rows = [
            create_row(
                query="usb hub", campaign_id="1", clicks=30, spend=30.0, orders=3, sales=60.0
            ),
            create_row(
                query="usb hub",
                campaign_id="2",
                match_type="exact",
                clicks=10,
                spend=20.0,
                orders=4,
                sales=200.0,
            ),
        ]
        suggestion = analyzer.analyze_migrations(rows)[0]
        assert suggestion.current_cpc == 1.0
        assert suggestion.recommended_bid == 2.0

    def test_exact_bid_multiplier(self, analyzer):
        """Exact promotions bid 10% above the current CPC by default."""
        suggestion = analyzer.analyze_migrations([phrase_row(12, clicks=50)])[0]
        assert suggestion.current_cpc == 2.0
        assert suggestion.recommended_bid == 2.2

    def test_negation_at_ad_group_scope(self, analyzer):
        """Keyword-only traffic is negated in its ad groups."""
        suggestion = analyzer.analyze_migrations([phrase_row(12)])[0]
        assert suggestion.negation_required
        assert suggestion.negation_scope == "ad_group"
        assert suggestion.ad_group_ids == ("11",)

    def test_product_targeting_forces_campaign_scope(self, analyzer):
        """Any product-targeted row in the campaign lifts scope to campaign."""
        rows = [
            phrase_row(12),
            phrase_row(
                0,
                ad_group_id="99",
                match_type=None,
                targeting_type="product",
                sales=0.0,
                spend=5.0,
                clicks=5,
            ),
        ]
        suggestion = analyzer.analyze_migrations(rows)[0]
        assert suggestion.negation_scope == "campaign"

    def test_product_targeting_in_other_campaign_is_ignored(self, analyzer):
        """Scope only looks at the source campaign."""
        rows = [
            phrase_row(12),
            phrase_row(0, campaign_id="2", targeting_type="product", sales=0.0),
        ]
        suggestion = next(
            s for s in analyzer.analyze_migrations(rows) if s.campaign_id == "1"
        )
        assert suggestion.negation_scope == "ad_group"

    def test_missing_ad_groups_use_campaign_scope(self, analyzer):
        """Without ad group ids only campaign scope is possible."""
        suggestion = analyzer.analyze_migrations([phrase_row(12, ad_group_id=None)])[0]
        assert suggestion.negation_scope == "campaign"
        assert suggestion.ad_group_ids == ()


class TestPriorityAndOrdering:
    """Test priority assignment and output order."""

    def test_priority_tiers(self, analyzer):
        """ROAS and order volume drive priority."""
        high = create_row(query="a thing", orders=3, spend=10.0, sales=100.0)
        volume = create_row(query="b thing", orders=25, spend=100.0, sales=150.0, clicks=100)
        medium = create_row(query="c thing", orders=3, spend=10.0, sales=40.0)
        low = create_row(query="d thing", orders=3, spend=40.0, sales=40.0)
        by_query = {
            s.query: s.priority
            for s in analyzer.analyze_migrations([high, volume, medium, low])
        }
        assert by_query == {
            "a thing": "high",
            "b thing": "high",
            "c thing": "medium",
            "d thing": "low",
        }

    def test_sorted_by_priority_then_roas(self, analyzer):
        rows = [
            create_row(query="low one", orders=3, spend=40.0, sales=40.0),
            create_row(query="high one", orders=3, spend=10.0, sales=90.0),
            create_row(query="high two", orders=3, spend=10.0, sales=120.0),
        ]
        assert [s.query for s in analyzer.analyze_migrations(rows)] == [
            "high two",
            "high one",
            "low one",
        ]

    def test_deterministic_under_permutation(self, analyzer):
        """Input order does not change output."""
        rows = [
            create_row(query=f"query {i}", campaign_id=str(c), orders=3 + i, sales=30.0 * i)
            for i in range(5)
            for c in (2, 10, 1)
        ]
        assert analyzer.analyze_migrations(rows) == analyzer.analyze_migrations(
            list(reversed(rows))
        )


class TestSummaries:
    """Test tier status and the migration summary."""

    def test_tier_status(self, analyzer):
        rows = [
            create_row(query="a", match_type="exact"),
            create_row(query="a", match_type="broad"),
            create_row(query="b", match_type="broad"),
            create_row(query="b", match_type="broad", campaign_id="2"),
            create_row(query="c", match_type="phrase"),
            create_row(query="d", match_type=None, targeting_type="product"),
        ]
        status = analyzer.tier_status(rows)
        assert (status.exact, status.phrase, status.broad) == (1, 1, 2)

    def test_summarize_includes_conflicts(self, analyzer):
        rows = [
            create_row(query="usb hub", campaign_id="1", orders=3, sales=60.0, spend=30.0),
            create_row(query="usb hub", campaign_id="2", orders=1, sales=10.0, spend=15.0),
        ]
        suggestions = analyzer.analyze_migrations(rows)
        conflicts = TrafficConflictAnalyzer().detect_conflicts(rows)
        summary = analyzer.summarize(rows, suggestions, conflicts)

        assert summary.total_search_terms == 1
        assert summary.migration_candidates == 1
        assert summary.low_priority == 1
        assert summary.conflict_count == 1
        assert summary.potential_savings == 15.0

    @pytest.mark.asyncio
    async def test_analyze(self, provider, account_id):
        """analyze returns the top promotions as a summary."""
        provider.add_rows(account_id, [phrase_row(12)])
        analyzer = FunnelMigrationAnalyzer(data_provider=provider)

        summary = await analyzer.analyze(account_id, window_days=30)

        assert summary.total_records_analyzed == 1
        assert summary.top_recommendations[0]["recommended_match_type"] == "exact"
        assert summary.primary_issue.startswith("No exact-match tier")
        assert summary.estimated_savings == 0.0

    @pytest.mark.asyncio
    async def test_fetch_suggestions_scoped_by_campaign(self, provider, account_id):
        provider.add_rows(
            account_id, [phrase_row(12), phrase_row(12, campaign_id="2")]
        )
        analyzer = FunnelMigrationAnalyzer(data_provider=provider)

        suggestions = await analyzer.fetch_suggestions(account_id, ["2"])
        assert [s.campaign_id for s in suggestions] == ["2"]
