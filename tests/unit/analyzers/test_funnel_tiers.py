"""Tests for funnel tier identification and negative sync planning."""

import pytest

from searchterm_intel.analyzers.funnel_tiers import (
    dominant_keyword_match_type,
    identify_funnel_tiers,
    plan_funnel_negatives,
    tier_for,
)
from searchterm_intel.core.config import FunnelConfig
from searchterm_intel.models.suggestions import FunnelTier
from tests.helpers.row_helpers import create_keyword


@pytest.fixture
def funnel_keywords():
    """One campaign per tier: core exact, long-tail phrase, explore broad."""
    return [
        create_keyword("Wireless Earbuds", "1", campaign_name="Earbuds - Exact"),
        create_keyword("earbuds", "1", campaign_name="Earbuds - Exact"),
        create_keyword(
            "earbuds with case", "2", campaign_name="Earbuds Long Tail", match_type="phrase"
        ),
        create_keyword("earbuds", "3", campaign_name="Earbuds Explore", match_type="broad"),
    ]


class TestTierFor:
    """Test placing a campaign in the funnel."""

    def test_exact_with_core_marker_is_core(self):
        assert tier_for("Earbuds - EXACT", "exact") == FunnelTier.CORE
        assert tier_for("Core Terms", "exact") == FunnelTier.CORE

    def test_exact_without_marker_is_long_tail(self):
        assert tier_for("Earbuds Brand", "exact") == FunnelTier.LONG_TAIL

    def test_phrase_is_long_tail(self):
        assert tier_for("Earbuds - Exact", "phrase") == FunnelTier.LONG_TAIL

    def test_broad_is_explore(self):
        assert tier_for("Earbuds Core", "broad") == FunnelTier.EXPLORE

    def test_custom_markers(self):
        config = FunnelConfig(core_campaign_markers=["HERO"])
        assert tier_for("Hero Terms", "exact", config) == FunnelTier.CORE
        assert tier_for("Earbuds Exact", "exact", config) == FunnelTier.LONG_TAIL


class TestIdentifyFunnelTiers:
    """Test campaign tier assignment from keyword inventory."""

    def test_dominant_match_type_by_count(self):
        keywords = [
            create_keyword("a", match_type="broad"),
            create_keyword("b", match_type="broad"),
            create_keyword("c", match_type="exact"),
        ]
        assert dominant_keyword_match_type(keywords) == "broad"

    def test_tie_goes_to_tighter_match_type(self):
        keywords = [
            create_keyword("a", match_type="phrase"),
            create_keyword("b", match_type="exact"),
        ]
        assert dominant_keyword_match_type(keywords) == "exact"

    def test_assignments_sorted_by_campaign(self, funnel_keywords):
        tiers = identify_funnel_tiers(reversed(funnel_keywords))

        assert [t.campaign_id for t in tiers] == ["1", "2", "3"]
        assert [t.tier for t in tiers] == [
            "tier1_exact",
            "tier2_longtail",
            "tier3_explore",
        ]
        assert tiers[0].keyword_count == 2
        assert tiers[0].dominant_match_type == "exact"

    def test_empty_inventory(self):
        assert identify_funnel_tiers([]) == []


class TestPlanFunnelNegatives:
    """Test negatives planned to keep tiers apart."""

    def test_lower_tiers_negate_upper_tiers(self, funnel_keywords, account_id):
        actions = plan_funnel_negatives(account_id, funnel_keywords)

        assert [(a.campaign_id, a.text, a.match_type) for a in actions] == [
            ("2", "earbuds", "negative_exact"),
            ("2", "wireless earbuds", "negative_exact"),
            ("3", "earbuds", "negative_phrase"),
            ("3", "earbuds with case", "negative_phrase"),
            ("3", "wireless earbuds", "negative_phrase"),
        ]
        assert all(a.source == "funnel_migration" for a in actions)
        assert all(a.scope == "campaign" for a in actions)
        assert all(a.account_id == account_id for a in actions)

    def test_existing_negatives_are_skipped(self, funnel_keywords, account_id):
        existing = {"2": ["Wireless  Earbuds"], "3": ["earbuds", "earbuds with case"]}

        actions = plan_funnel_negatives(account_id, funnel_keywords, existing)

        assert [(a.campaign_id, a.text) for a in actions] == [
            ("2", "earbuds"),
            ("3", "wireless earbuds"),
        ]

    def test_no_core_tier_leaves_long_tail_alone(self, account_id):
        keywords = [
            create_keyword("earbuds case", "2", match_type="phrase"),
            create_keyword("earbuds", "3", match_type="broad"),
        ]

        actions = plan_funnel_negatives(account_id, keywords)

        assert [(a.campaign_id, a.text, a.match_type) for a in actions] == [
            ("3", "earbuds case", "negative_phrase"),
        ]

    def test_only_core_campaigns_plan_nothing(self, account_id):
        keywords = [create_keyword("earbuds", "1", campaign_name="Core")]
        assert plan_funnel_negatives(account_id, keywords) == []
