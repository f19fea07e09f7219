"""Review decision, execution action and audit models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ConfigDict, Field, model_validator

from searchterm_intel.models.base import BaseSTIModel
from searchterm_intel.models.performance import NegationScope, NegativeMatchType
from searchterm_intel.models.suggestions import (
    ConflictGroup,
    MigrationSuggestion,
    NegativeSuggestion,
)


def utc_now() -> datetime:
    """Get current UTC datetime (Python 3.12 compatible)."""
    return datetime.now(timezone.utc)


class SuggestionKind(str, Enum):
    """Which suggestion stream a decision belongs to."""

    NEGATIVE = "negative"
    MIGRATION = "migration"
    CONFLICT = "conflict"


class ReviewAction(str, Enum):
    """Human verdict on a suggestion."""

    ACCEPT = "accept"
    REJECT = "reject"


class ReviewState(str, Enum):
    """Lifecycle of a suggestion inside a review batch."""

    GENERATED = "generated"
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXECUTED = "executed"


class ActionSource(str, Enum):
    """Analysis that produced a negative keyword action."""

    NGRAM_ANALYSIS = "ngram_analysis"
    FUNNEL_MIGRATION = "funnel_migration"
    TRAFFIC_CONFLICT = "traffic_conflict"


_PAYLOAD_TYPES = {
    SuggestionKind.NEGATIVE.value: NegativeSuggestion,
    SuggestionKind.MIGRATION.value: MigrationSuggestion,
    SuggestionKind.CONFLICT.value: ConflictGroup,
}


class ReviewDecision(BaseSTIModel):
    """An accept/reject verdict on one suggestion.

    The payload type must agree with ``kind``. Negative suggestions carry no
    campaign of their own, so a negative decision names the campaign (and
    optionally the ad group) that receives the negative keyword.
    """

    model_config = ConfigDict(frozen=True)

    kind: SuggestionKind
    action: ReviewAction
    account_id: str
    payload: NegativeSuggestion | MigrationSuggestion | ConflictGroup
    campaign_id: str | None = Field(
        None, description="Target campaign for a negative suggestion"
    )
    ad_group_id: str | None = Field(
        None, description="Target ad group for a negative suggestion"
    )
    reviewer: str | None = None
    decided_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def validate_payload_kind(self) -> "ReviewDecision":
        """Ensure the payload matches the decision kind."""
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.kind} decision requires a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )
        if self.kind == SuggestionKind.NEGATIVE and not self.campaign_id:
            raise ValueError("negative decisions require a target campaign_id")
        return self

    @property
    def suggestion_id(self) -> str:
        """Review key; a negative root is a separate item per target."""
        if self.kind == SuggestionKind.NEGATIVE:
            target = self.ad_group_id or "*"
            return f"{self.payload.suggestion_id}@{self.campaign_id}/{target}"
        return self.payload.suggestion_id


class NegativeKeywordAction(BaseSTIModel):
    """One concrete negative keyword write."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    campaign_id: str
    ad_group_id: str | None = None
    text: str
    match_type: NegativeMatchType
    source: ActionSource

    @property
    def scope(self) -> NegationScope:
        return NegationScope.AD_GROUP if self.ad_group_id else NegationScope.CAMPAIGN


class ReviewRecord(BaseSTIModel):
    """Audit entry for one reviewed suggestion."""

    model_config = ConfigDict(frozen=True)

    decision: ReviewDecision
    state: ReviewState
    before: dict[str, Any]
    after: dict[str, Any]
    actions: tuple[NegativeKeywordAction, ...] = ()
    recorded_at: datetime = Field(default_factory=utc_now)


class ExecutionResult(BaseSTIModel):
    """Outcome of reviewing and executing a batch of decisions."""

    accepted_count: int = 0
    rejected_count: int = 0
    added_count: int = 0
    skipped_count: int = Field(
        default=0, description="Writes not attempted because the batch was refused"
    )
    errors: list[str] = Field(default_factory=list)
    failed_actions: list[NegativeKeywordAction] = Field(
        default_factory=list, description="Writes to retry; never retried automatically"
    )
    records: list[ReviewRecord] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors
