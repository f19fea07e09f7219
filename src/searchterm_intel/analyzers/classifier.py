"""Negative-candidate classification of aggregated word roots.

Rules form an ordered table of (predicate, reason, priority) entries. They
are evaluated top to bottom and the first match wins, so every root gets at
most one reason and one priority.
"""

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from searchterm_intel.core.config import ClassifierConfig, NgramConfig
from searchterm_intel.models.base import PRIORITY_ORDER, Priority
from searchterm_intel.models.performance import NegativeMatchType
from searchterm_intel.models.suggestions import NegativeSuggestion, WordRoot


def _format_acos(acos: float) -> str:
    return "no sales" if math.isinf(acos) else f"{acos:.0f}%"


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the classification table."""

    code: str
    priority: Priority
    matches: Callable[[WordRoot], bool]
    explain: Callable[[WordRoot], str]


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one root."""

    is_candidate: bool
    reason_code: str = ""
    reason: str = ""
    priority: Priority | None = None


NOT_A_CANDIDATE = Classification(is_candidate=False)


def build_rules(config: ClassifierConfig, min_spend: float) -> list[ClassificationRule]:
    """Build the ordered rule table for the given thresholds."""
    zero_order_spend = min_spend * config.zero_order_spend_multiplier
    return [
        ClassificationRule(
            code="common_root",
            priority=Priority.HIGH,
            matches=lambda r: r.root in config.common_negative_roots,
            explain=lambda r: "common low-value root",
        ),
        ClassificationRule(
            code="zero_orders",
            priority=Priority.HIGH,
            matches=lambda r: r.orders == 0 and r.spend >= zero_order_spend,
            explain=lambda r: (
                f"high spend zero orders (spend ${r.spend:,.2f}, 0 orders)"
            ),
        ),
        ClassificationRule(
            code="low_cvr_high_acos",
            priority=Priority.MEDIUM,
            matches=lambda r: r.cvr < config.max_cvr
            and r.acos > config.min_acos_for_medium,
            explain=lambda r: (
                f"low conversion high ACoS (CVR {r.cvr:.2f}%, "
                f"ACoS {_format_acos(r.acos)})"
            ),
        ),
        ClassificationRule(
            code="poor_performance",
            priority=Priority.LOW,
            matches=lambda r: r.acos > config.min_acos_for_low
            and r.orders < config.max_orders_for_low,
            explain=lambda r: (
                f"poor performance (ACoS {_format_acos(r.acos)}, {r.orders} orders)"
            ),
        ),
    ]


class NegativeCandidateClassifier:
    """Decide which word roots should become negative keywords."""

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        ngram_config: NgramConfig | None = None,
    ):
        self.config = config or ClassifierConfig()
        self.min_spend = (ngram_config or NgramConfig()).min_spend
        self.rules = build_rules(self.config, self.min_spend)

    def classify(self, root: WordRoot) -> Classification:
        """Apply the rule table to one root; first match wins."""
        for rule in self.rules:
            if rule.matches(root):
                return Classification(
                    is_candidate=True,
                    reason_code=rule.code,
                    reason=rule.explain(root),
                    priority=rule.priority,
                )
        return NOT_A_CANDIDATE

    def to_suggestion(
        self, root: WordRoot, classification: Classification
    ) -> NegativeSuggestion:
        """Turn a positively classified root into a suggestion."""
        return NegativeSuggestion(
            root=root.root,
            n=root.n,
            match_type=(
                NegativeMatchType.NEGATIVE_PHRASE
                if root.n > 1
                else NegativeMatchType.NEGATIVE_EXACT
            ),
            reason_code=classification.reason_code,
            reason=classification.reason,
            priority=classification.priority,
            frequency=root.frequency,
            spend=root.spend,
            clicks=root.clicks,
            orders=root.orders,
            acos=root.acos,
            affected_queries=root.queries[: self.config.max_affected_queries],
            estimated_savings=root.spend * self.config.recovery_ratio,
        )

    def suggest(self, roots: Iterable[WordRoot]) -> list[NegativeSuggestion]:
        """Classify every root and return candidates, largest waste first.

        Sorted by priority (high, medium, low), then spend descending, then
        root text so that equal inputs always produce equal output.
        """
        suggestions = []
        for root in roots:
            classification = self.classify(root)
            if classification.is_candidate:
                suggestions.append(self.to_suggestion(root, classification))
        return sort_suggestions(suggestions)


def sort_suggestions(suggestions: list[NegativeSuggestion]) -> list[NegativeSuggestion]:
    return sorted(
        suggestions,
        key=lambda s: (PRIORITY_ORDER[s.priority], -s.spend, s.root),
    )


def classify(
    root: WordRoot,
    config: ClassifierConfig | None = None,
    ngram_config: NgramConfig | None = None,
) -> Classification:
    """Classify a single root with the given (or default) thresholds."""
    return NegativeCandidateClassifier(config, ngram_config).classify(root)
