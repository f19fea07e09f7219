"""Analyzers module for search term intelligence.

Analysis functions are pure over an already fetched row snapshot; each
analyzer's ``analyze`` coroutine fetches through its data provider and
returns only a compact summary.
"""

from searchterm_intel.analyzers.base import AnalysisSummary, BaseAnalyzer
from searchterm_intel.analyzers.classifier import (
    Classification,
    ClassificationRule,
    NegativeCandidateClassifier,
    classify,
)
from searchterm_intel.analyzers.funnel_migration import (
    FunnelMigrationAnalyzer,
    MigrationSummary,
    TierStatus,
)
from searchterm_intel.analyzers.funnel_tiers import (
    identify_funnel_tiers,
    plan_funnel_negatives,
)
from searchterm_intel.analyzers.ngram import (
    NgramNegativeAnalyzer,
    NgramReport,
    NgramSummary,
    aggregate,
)
from searchterm_intel.analyzers.tokenizer import build_core_roots, tokenize
from searchterm_intel.analyzers.traffic_conflicts import TrafficConflictAnalyzer

__all__ = [
    "AnalysisSummary",
    "BaseAnalyzer",
    "Classification",
    "ClassificationRule",
    "FunnelMigrationAnalyzer",
    "MigrationSummary",
    "NegativeCandidateClassifier",
    "NgramNegativeAnalyzer",
    "NgramReport",
    "NgramSummary",
    "TierStatus",
    "TrafficConflictAnalyzer",
    "aggregate",
    "build_core_roots",
    "classify",
    "identify_funnel_tiers",
    "plan_funnel_negatives",
    "tokenize",
]
