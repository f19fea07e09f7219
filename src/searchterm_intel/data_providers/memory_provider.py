"""In-memory data provider for tests and offline analysis."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta

from searchterm_intel.core.exceptions import DuplicateNegativeKeywordError, ExecutionError
from searchterm_intel.data_providers.base import (
    NegativeKeywordWriter,
    PerformanceDataProvider,
)
from searchterm_intel.models.performance import NegativeMatchType, PerformanceRow

logger = logging.getLogger(__name__)


class InMemoryDataProvider(PerformanceDataProvider, NegativeKeywordWriter):
    """Row source, keyword source and write collaborator backed by dicts.

    Negative keywords written through ``add_negative_keyword`` become part of
    the account's keyword inventory, so the next analysis run excludes their
    tokens from the core-root filter just as a synced platform account would.
    """

    def __init__(
        self,
        reference_date: date | None = None,
        negatives_in_inventory: bool = True,
        fail_texts: set[str] | None = None,
    ):
        """Initialize the provider.

        Args:
            reference_date: "Today" for lookback filtering (defaults to date.today())
            negatives_in_inventory: Report written negatives as active keyword texts
            fail_texts: Negative texts whose writes fail with ExecutionError
        """
        self.reference_date = reference_date
        self.negatives_in_inventory = negatives_in_inventory
        self.fail_texts = {t.lower() for t in (fail_texts or set())}
        self._rows: dict[str, list[PerformanceRow]] = defaultdict(list)
        self._keywords: dict[str, list[tuple[str, str]]] = defaultdict(list)
        self._negatives: dict[tuple[str, str, str | None, str, str], None] = {}

    def add_rows(self, account_id: str, rows: list[PerformanceRow]) -> None:
        self._rows[account_id].extend(rows)

    def add_keywords(self, account_id: str, campaign_id: str, texts: list[str]) -> None:
        self._keywords[account_id].extend((campaign_id, text) for text in texts)

    @property
    def negatives(self) -> list[tuple[str, str, str | None, str, str]]:
        """Written negatives as (account, campaign, ad group, text, match type)."""
        return list(self._negatives)

    async def fetch_performance_rows(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
        window_days: int = 30,
    ) -> list[PerformanceRow]:
        """Return stored rows inside the lookback window."""
        start = (self.reference_date or date.today()) - timedelta(days=window_days)
        rows = [
            row
            for row in self._rows.get(account_id, [])
            if (not campaign_ids or row.campaign_id in campaign_ids)
            and (row.date_start is None or row.date_start >= start)
        ]
        logger.debug(f"Fetched {len(rows)} rows for account {account_id}")
        return rows

    async def fetch_active_keyword_texts(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
    ) -> list[str]:
        """Return keyword texts in scope, plus written negatives if configured."""
        texts = [
            text
            for campaign_id, text in self._keywords.get(account_id, [])
            if not campaign_ids or campaign_id in campaign_ids
        ]
        if self.negatives_in_inventory:
            texts.extend(
                text
                for acct, campaign_id, _, text, _ in self._negatives
                if acct == account_id and (not campaign_ids or campaign_id in campaign_ids)
            )
        return texts

    async def add_negative_keyword(
        self,
        account_id: str,
        campaign_id: str,
        ad_group_id: str | None,
        text: str,
        match_type: NegativeMatchType,
    ) -> None:
        """Store a negative keyword, rejecting duplicates."""
        if text.lower() in self.fail_texts:
            raise ExecutionError(f"Platform rejected negative keyword '{text}'")

        match_value = getattr(match_type, "value", match_type)
        key = (account_id, campaign_id, ad_group_id, text.lower(), match_value)
        if key in self._negatives:
            raise DuplicateNegativeKeywordError(
                f"Duplicate negative keyword '{text}' in campaign {campaign_id}"
            )
        self._negatives[key] = None
