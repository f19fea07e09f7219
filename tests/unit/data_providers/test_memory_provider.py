"""Tests for the in-memory data provider."""

from datetime import timedelta

import pytest

from searchterm_intel.core.exceptions import DuplicateNegativeKeywordError, ExecutionError
from searchterm_intel.data_providers import InMemoryDataProvider
from searchterm_intel.models.performance import NegativeMatchType
from tests.helpers.row_helpers import create_row


class TestFetchPerformanceRows:
    """Test row fetching."""

    @pytest.mark.asyncio
    async def test_lookback_window(self, provider, account_id, reference_date):
        provider.add_rows(
            account_id,
            [
                create_row(query="recent", date_start=reference_date - timedelta(days=5)),
                create_row(query="old", date_start=reference_date - timedelta(days=45)),
                create_row(query="undated"),
            ],
        )
        rows = await provider.fetch_performance_rows(account_id, window_days=30)
        assert [r.query for r in rows] == ["recent", "undated"]

    @pytest.mark.asyncio
    async def test_campaign_filter(self, provider, account_id):
        provider.add_rows(
            account_id, [create_row(campaign_id="1"), create_row(campaign_id="2")]
        )
        rows = await provider.fetch_performance_rows(account_id, ["2"])
        assert [r.campaign_id for r in rows] == ["2"]

    @pytest.mark.asyncio
    async def test_unknown_account_is_empty(self, provider):
        assert await provider.fetch_performance_rows("nobody") == []
        assert await provider.fetch_active_keyword_texts("nobody") == []


class TestNegativeKeywords:
    """Test the write collaborator side."""

    @pytest.mark.asyncio
    async def test_duplicates_rejected_case_insensitively(self, provider, account_id):
        await provider.add_negative_keyword(
            account_id, "1", None, "Free", NegativeMatchType.NEGATIVE_EXACT
        )
        with pytest.raises(DuplicateNegativeKeywordError):
            await provider.add_negative_keyword(
                account_id, "1", None, "free", NegativeMatchType.NEGATIVE_EXACT
            )

    @pytest.mark.asyncio
    async def test_scope_and_match_type_distinguish_negatives(self, provider, account_id):
        await provider.add_negative_keyword(
            account_id, "1", None, "free", NegativeMatchType.NEGATIVE_EXACT
        )
        await provider.add_negative_keyword(
            account_id, "1", "11", "free", NegativeMatchType.NEGATIVE_EXACT
        )
        await provider.add_negative_keyword(
            account_id, "1", None, "free", NegativeMatchType.NEGATIVE_PHRASE
        )
        assert len(provider.negatives) == 3

    @pytest.mark.asyncio
    async def test_negatives_join_keyword_inventory(self, provider, account_id):
        provider.add_keywords(account_id, "1", ["wireless earbuds"])
        await provider.add_negative_keyword(
            account_id, "1", None, "free", NegativeMatchType.NEGATIVE_EXACT
        )
        assert await provider.fetch_active_keyword_texts(account_id, ["1"]) == [
            "wireless earbuds",
            "free",
        ]
        assert await provider.fetch_active_keyword_texts(account_id, ["2"]) == []

    @pytest.mark.asyncio
    async def test_inventory_can_exclude_negatives(self, reference_date, account_id):
        provider = InMemoryDataProvider(reference_date, negatives_in_inventory=False)
        await provider.add_negative_keyword(
            account_id, "1", None, "free", NegativeMatchType.NEGATIVE_EXACT
        )
        assert await provider.fetch_active_keyword_texts(account_id) == []

    @pytest.mark.asyncio
    async def test_configured_failures(self, reference_date, account_id):
        provider = InMemoryDataProvider(reference_date, fail_texts={"Broken"})
        with pytest.raises(ExecutionError):
            await provider.add_negative_keyword(
                account_id, "1", None, "broken", NegativeMatchType.NEGATIVE_EXACT
            )
        assert provider.negatives == []
