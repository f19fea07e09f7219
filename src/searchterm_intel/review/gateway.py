"""Suggestion Review & Execution Gateway.

The only component that changes keyword inventory. Each review batch drives
its suggestions through ``generated -> under_review -> accepted -> executed``
or ``-> rejected``; only accepted suggestions reach the write collaborator.
"""

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Any

from searchterm_intel.analyzers.funnel_tiers import plan_funnel_negatives
from searchterm_intel.analyzers.ngram import NgramNegativeAnalyzer
from searchterm_intel.analyzers.traffic_conflicts import TrafficConflictAnalyzer
from searchterm_intel.core.config import FunnelConfig, ReviewConfig
from searchterm_intel.core.exceptions import (
    ConfigurationError,
    DuplicateNegativeKeywordError,
    InvalidTransitionError,
)
from searchterm_intel.data_providers.base import NegativeKeywordWriter
from searchterm_intel.models.performance import (
    Keyword,
    NegationScope,
    NegativeMatchType,
)
from searchterm_intel.models.review import (
    ActionSource,
    ExecutionResult,
    NegativeKeywordAction,
    ReviewAction,
    ReviewDecision,
    ReviewRecord,
    ReviewState,
    SuggestionKind,
)
from searchterm_intel.models.suggestions import (
    ConflictGroup,
    MigrationSuggestion,
    NegativeSuggestion,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ReviewState.GENERATED.value: frozenset({ReviewState.UNDER_REVIEW.value}),
    ReviewState.UNDER_REVIEW.value: frozenset(
        {ReviewState.ACCEPTED.value, ReviewState.REJECTED.value}
    ),
    ReviewState.ACCEPTED.value: frozenset({ReviewState.EXECUTED.value}),
    ReviewState.REJECTED.value: frozenset(),
    ReviewState.EXECUTED.value: frozenset(),
}


class SuggestionLifecycle:
    """Review states of the suggestions in one batch."""

    def __init__(self) -> None:
        self._states: dict[str, str] = {}

    def state_of(self, suggestion_id: str) -> str:
        return self._states.get(suggestion_id, ReviewState.GENERATED.value)

    def transition(self, suggestion_id: str, target: ReviewState) -> None:
        """Move a suggestion to ``target`` or raise InvalidTransitionError."""
        current = self.state_of(suggestion_id)
        if target.value not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(suggestion_id, current, target.value)
        self._states[suggestion_id] = target.value


def negative_actions(decision: ReviewDecision) -> list[NegativeKeywordAction]:
    suggestion: NegativeSuggestion = decision.payload
    return [
        NegativeKeywordAction(
            account_id=decision.account_id,
            campaign_id=decision.campaign_id,
            ad_group_id=decision.ad_group_id,
            text=suggestion.root,
            match_type=suggestion.match_type,
            source=ActionSource.NGRAM_ANALYSIS,
        )
    ]


def migration_actions(decision: ReviewDecision) -> list[NegativeKeywordAction]:
    """Negate a promoted query in its source campaign, if still needed."""
    suggestion: MigrationSuggestion = decision.payload
    if not suggestion.negation_required:
        return []
    if suggestion.negation_scope == NegationScope.AD_GROUP and suggestion.ad_group_ids:
        ad_group_ids: list[str | None] = list(suggestion.ad_group_ids)
    else:
        ad_group_ids = [None]
    return [
        NegativeKeywordAction(
            account_id=decision.account_id,
            campaign_id=suggestion.campaign_id,
            ad_group_id=ad_group_id,
            text=suggestion.query,
            match_type=NegativeMatchType.NEGATIVE_EXACT,
            source=ActionSource.FUNNEL_MIGRATION,
        )
        for ad_group_id in ad_group_ids
    ]


def conflict_actions(decision: ReviewDecision) -> list[NegativeKeywordAction]:
    """Negate the query in every losing campaign at the loser's scope."""
    conflict: ConflictGroup = decision.payload
    actions = []
    for loser in conflict.resolution.losers:
        if loser.negation_scope == NegationScope.AD_GROUP and loser.ad_group_ids:
            ad_group_ids: list[str | None] = list(loser.ad_group_ids)
        else:
            ad_group_ids = [None]
        actions.extend(
            NegativeKeywordAction(
                account_id=decision.account_id,
                campaign_id=loser.campaign_id,
                ad_group_id=ad_group_id,
                text=conflict.query,
                match_type=NegativeMatchType.NEGATIVE_EXACT,
                source=ActionSource.TRAFFIC_CONFLICT,
            )
            for ad_group_id in ad_group_ids
        )
    return actions


ACTION_PLANNERS = {
    SuggestionKind.NEGATIVE.value: negative_actions,
    SuggestionKind.MIGRATION.value: migration_actions,
    SuggestionKind.CONFLICT.value: conflict_actions,
}


class ReviewGateway:
    """Apply reviewed suggestions through a negative keyword writer.

    Writes are awaited one at a time in decision order. A duplicate write is
    treated as success; any other failure is reported in the result and the
    batch continues. Nothing is retried automatically. A batch that would
    write more than ``max_negatives_per_batch`` negatives is refused whole.

    Review history is bounded by ``max_history_records``; the oldest records
    are dropped first.
    """

    def __init__(
        self,
        writer: NegativeKeywordWriter,
        ngram_analyzer: NgramNegativeAnalyzer | None = None,
        conflict_analyzer: TrafficConflictAnalyzer | None = None,
        config: ReviewConfig | None = None,
    ):
        """Initialize the gateway.

        Args:
            writer: Collaborator that adds negative keywords
            ngram_analyzer: Regenerates negatives for ``accept_all_negatives``
            conflict_analyzer: Regenerates conflicts for ``accept_all_conflicts``
            config: Batch and history limits
        """
        self.writer = writer
        self.ngram_analyzer = ngram_analyzer
        self.conflict_analyzer = conflict_analyzer
        self.config = config or ReviewConfig()
        self._history: deque[ReviewRecord] = deque(
            maxlen=self.config.max_history_records
        )

    def plan_actions(self, decision: ReviewDecision) -> list[NegativeKeywordAction]:
        """Concrete writes an accepted decision would perform."""
        return ACTION_PLANNERS[decision.kind](decision)

    async def review(self, decisions: list[ReviewDecision]) -> ExecutionResult:
        """Record verdicts and execute every accepted decision.

        Args:
            decisions: Accept/reject verdicts, executed in list order

        Returns:
            ExecutionResult with counts, per-item errors and failed writes
            and, when the batch exceeds the limit, every write counted as skipped

        Raises:
            InvalidTransitionError: A suggestion appears twice in the batch.
                Raised before any write is attempted.
        """
        lifecycle = SuggestionLifecycle()
        for decision in decisions:
            lifecycle.transition(decision.suggestion_id, ReviewState.UNDER_REVIEW)

        planned = {
            decision.suggestion_id: self.plan_actions(decision)
            for decision in decisions
            if decision.action == ReviewAction.ACCEPT
        }
        total = sum(len(actions) for actions in planned.values())
        if total > self.config.max_negatives_per_batch:
            return self._refuse(total)

        result = ExecutionResult()
        for decision in decisions:
            before = {
                "suggestion_id": decision.suggestion_id,
                "state": lifecycle.state_of(decision.suggestion_id),
            }
            if decision.action == ReviewAction.REJECT:
                lifecycle.transition(decision.suggestion_id, ReviewState.REJECTED)
                result.rejected_count += 1
                self._record(result, decision, lifecycle, before, ())
                continue

            lifecycle.transition(decision.suggestion_id, ReviewState.ACCEPTED)
            result.accepted_count += 1
            actions = planned[decision.suggestion_id]
            added, duplicates, failed = await self._execute(actions, result)
            if not failed:
                lifecycle.transition(decision.suggestion_id, ReviewState.EXECUTED)
            self._record(
                result,
                decision,
                lifecycle,
                before,
                tuple(actions),
                added=added,
                duplicates=duplicates,
                failed=failed,
            )

        logger.info(
            f"Review complete: {result.accepted_count} accepted, "
            f"{result.rejected_count} rejected, {result.added_count} negatives added, "
            f"{len(result.errors)} errors"
        )
        return result

    async def apply_actions(
        self, actions: list[NegativeKeywordAction]
    ) -> ExecutionResult:
        """Execute already planned negative keyword writes under the batch limit."""
        if len(actions) > self.config.max_negatives_per_batch:
            return self._refuse(len(actions))

        result = ExecutionResult()
        await self._execute(actions, result)
        logger.info(
            f"Applied {result.added_count} of {len(actions)} planned negatives, "
            f"{len(result.errors)} errors"
        )
        return result

    def _refuse(self, count: int) -> ExecutionResult:
        limit = self.config.max_negatives_per_batch
        logger.warning(f"Refusing batch of {count} negatives, limit is {limit}")
        return ExecutionResult(
            skipped_count=count,
            errors=[f"Batch of {count} negatives exceeds the per-batch limit of {limit}"],
        )

    async def _execute(
        self, actions: list[NegativeKeywordAction], result: ExecutionResult
    ) -> tuple[int, int, int]:
        added = duplicates = failed = 0
        for action in actions:
            try:
                await self.writer.add_negative_keyword(
                    action.account_id,
                    action.campaign_id,
                    action.ad_group_id,
                    action.text,
                    NegativeMatchType(action.match_type),
                )
            except DuplicateNegativeKeywordError:
                logger.debug(
                    f"Negative '{action.text}' already exists in campaign "
                    f"{action.campaign_id}, skipping"
                )
                duplicates += 1
                continue
            except Exception as e:
                logger.warning(
                    f"Failed to add negative '{action.text}' to campaign "
                    f"{action.campaign_id}: {e}"
                )
                target = action.ad_group_id or action.campaign_id
                result.errors.append(
                    f"{action.text} ({action.scope.value} {target}): {e}"
                )
                result.failed_actions.append(action)
                failed += 1
                continue
            added += 1
            result.added_count += 1
        return added, duplicates, failed

    def _record(
        self,
        result: ExecutionResult,
        decision: ReviewDecision,
        lifecycle: SuggestionLifecycle,
        before: dict[str, Any],
        actions: tuple[NegativeKeywordAction, ...],
        added: int = 0,
        duplicates: int = 0,
        failed: int = 0,
    ) -> None:
        state = lifecycle.state_of(decision.suggestion_id)
        record = ReviewRecord(
            decision=decision,
            state=state,
            before=before,
            after={
                "suggestion_id": decision.suggestion_id,
                "state": state,
                "added": added,
                "duplicates": duplicates,
                "failed": failed,
            },
            actions=actions,
        )
        result.records.append(record)
        self._history.append(record)

    def history(self, kind: SuggestionKind | str | None = None) -> list[ReviewRecord]:
        """Review records produced by this gateway, oldest first."""
        if kind is None:
            return list(self._history)
        kind_value = SuggestionKind(kind).value
        return [r for r in self._history if r.decision.kind == kind_value]

    async def accept_all_negatives(
        self,
        account_id: str,
        campaign_id: str,
        ad_group_id: str | None = None,
        window_days: int = 30,
        reviewer: str | None = None,
    ) -> ExecutionResult:
        """Regenerate negative suggestions for a campaign and accept them all.

        Suggestions are recomputed from a fresh snapshot immediately before
        execution so stale suggestions are never applied.
        """
        if self.ngram_analyzer is None:
            raise ConfigurationError("accept_all_negatives requires an n-gram analyzer")

        suggestions = await self.ngram_analyzer.fetch_suggestions(
            account_id, [campaign_id], window_days
        )
        logger.info(
            f"Accepting {len(suggestions)} regenerated negatives for campaign {campaign_id}"
        )
        decisions = [
            ReviewDecision(
                kind=SuggestionKind.NEGATIVE,
                action=ReviewAction.ACCEPT,
                account_id=account_id,
                payload=suggestion,
                campaign_id=campaign_id,
                ad_group_id=ad_group_id,
                reviewer=reviewer,
            )
            for suggestion in suggestions
        ]
        return await self.review(decisions)

    async def accept_all_conflicts(
        self,
        account_id: str,
        campaign_ids: list[str] | None = None,
        window_days: int = 30,
        reviewer: str | None = None,
    ) -> ExecutionResult:
        """Regenerate traffic conflicts and accept every resolution."""
        if self.conflict_analyzer is None:
            raise ConfigurationError("accept_all_conflicts requires a conflict analyzer")

        conflicts = await self.conflict_analyzer.fetch_conflicts(
            account_id, campaign_ids, window_days
        )
        logger.info(f"Accepting {len(conflicts)} regenerated conflict resolutions")
        decisions = [
            ReviewDecision(
                kind=SuggestionKind.CONFLICT,
                action=ReviewAction.ACCEPT,
                account_id=account_id,
                payload=conflict,
                reviewer=reviewer,
            )
            for conflict in conflicts
        ]
        return await self.review(decisions)

    async def sync_funnel_negatives(
        self,
        account_id: str,
        keywords: Iterable[Keyword],
        existing_negatives: Mapping[str, Iterable[str]] | None = None,
        config: FunnelConfig | None = None,
    ) -> ExecutionResult:
        """Negate upper funnel tier keywords in the tiers below them.

        Args:
            account_id: Advertising account ID
            keywords: Active keyword inventory of the account
            existing_negatives: Negative texts already present, by campaign id
            config: Funnel tier settings

        Returns:
            ExecutionResult of the planned writes
        """
        actions = plan_funnel_negatives(account_id, keywords, existing_negatives, config)
        return await self.apply_actions(actions)
