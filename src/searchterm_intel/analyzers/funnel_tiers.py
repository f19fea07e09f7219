"""Funnel tier negative sync.

Campaigns are placed in a three-tier match-type funnel from the keywords they
target. Each lower tier negates the keywords of the tiers above it so a query
is served by the tightest campaign that bids on it:

- tier 2 (long tail) negates tier 1 keywords as negative exact
- tier 3 (explore) negates tier 1 and tier 2 keywords as negative phrase

Planning is pure; the review gateway executes the planned writes.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping

from searchterm_intel.core.config import FunnelConfig
from searchterm_intel.models.performance import (
    MATCH_TYPE_RESTRICTIVENESS,
    Keyword,
    MatchType,
    NegativeMatchType,
    campaign_sort_key,
)
from searchterm_intel.models.review import ActionSource, NegativeKeywordAction
from searchterm_intel.models.suggestions import FunnelTier, FunnelTierAssignment

logger = logging.getLogger(__name__)


def dominant_keyword_match_type(keywords: list[Keyword]) -> str:
    """Match type used by the most keywords; ties go to the tighter type."""
    counts: dict[str, int] = defaultdict(int)
    for keyword in keywords:
        counts[keyword.match_type] += 1
    return max(counts, key=lambda m: (counts[m], MATCH_TYPE_RESTRICTIVENESS[m]))


def tier_for(
    campaign_name: str, match_type: str, config: FunnelConfig | None = None
) -> FunnelTier:
    """Place one campaign in the funnel.

    Exact campaigns are core only when their name carries a core marker;
    other exact campaigns and phrase campaigns are long tail.
    """
    config = config or FunnelConfig()
    if match_type == MatchType.EXACT.value:
        name = campaign_name.lower()
        if any(marker in name for marker in config.core_campaign_markers):
            return FunnelTier.CORE
        return FunnelTier.LONG_TAIL
    if match_type == MatchType.PHRASE.value:
        return FunnelTier.LONG_TAIL
    return FunnelTier.EXPLORE


def identify_funnel_tiers(
    keywords: Iterable[Keyword], config: FunnelConfig | None = None
) -> list[FunnelTierAssignment]:
    """Assign every campaign with active keywords to a funnel tier."""
    by_campaign: dict[str, list[Keyword]] = defaultdict(list)
    for keyword in keywords:
        by_campaign[keyword.campaign_id].append(keyword)

    assignments = []
    for campaign_id in sorted(by_campaign, key=campaign_sort_key):
        campaign_keywords = by_campaign[campaign_id]
        name = next((k.campaign_name for k in campaign_keywords if k.campaign_name), "")
        match_type = dominant_keyword_match_type(campaign_keywords)
        assignments.append(
            FunnelTierAssignment(
                campaign_id=campaign_id,
                campaign_name=name,
                tier=tier_for(name, match_type, config),
                dominant_match_type=match_type,
                keyword_count=len(campaign_keywords),
            )
        )
    return assignments


def plan_funnel_negatives(
    account_id: str,
    keywords: Iterable[Keyword],
    existing_negatives: Mapping[str, Iterable[str]] | None = None,
    config: FunnelConfig | None = None,
) -> list[NegativeKeywordAction]:
    """Plan the campaign-level negatives that keep the funnel tiers apart.

    Args:
        account_id: Advertising account ID
        keywords: Active keyword inventory of the account
        existing_negatives: Negative texts already present, by campaign id
        config: Funnel tier settings

    Returns:
        Writes ordered by campaign then keyword text; negatives that already
        exist in a campaign are skipped
    """
    keywords = list(keywords)
    existing = {
        campaign_id: {" ".join(text.lower().split()) for text in texts}
        for campaign_id, texts in (existing_negatives or {}).items()
    }
    tiers = identify_funnel_tiers(keywords, config)
    tier_by_campaign = {t.campaign_id: t.tier for t in tiers}

    texts_by_tier: dict[str, set[str]] = defaultdict(set)
    for keyword in keywords:
        texts_by_tier[tier_by_campaign[keyword.campaign_id]].add(keyword.normalized_text)
    core_texts = sorted(texts_by_tier[FunnelTier.CORE.value])
    upper_texts = sorted(
        texts_by_tier[FunnelTier.CORE.value] | texts_by_tier[FunnelTier.LONG_TAIL.value]
    )

    actions = []
    for assignment in tiers:
        if assignment.tier == FunnelTier.LONG_TAIL:
            texts, match_type = core_texts, NegativeMatchType.NEGATIVE_EXACT
        elif assignment.tier == FunnelTier.EXPLORE:
            texts, match_type = upper_texts, NegativeMatchType.NEGATIVE_PHRASE
        else:
            continue
        already = existing.get(assignment.campaign_id, set())
        actions.extend(
            NegativeKeywordAction(
                account_id=account_id,
                campaign_id=assignment.campaign_id,
                text=text,
                match_type=match_type,
                source=ActionSource.FUNNEL_MIGRATION,
            )
            for text in texts
            if text not in already
        )

    logger.info(
        f"Planned {len(actions)} funnel negatives across {len(tiers)} campaigns "
        f"for account {account_id}"
    )
    return actions
